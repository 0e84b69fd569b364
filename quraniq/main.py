#!/usr/bin/env python3
"""
CLI interface for QuranIQ.
"""

import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from .auth import Identity, Session
from .config import Settings
from .generator import AnswerGenerator
from .journeys import JOURNEYS
from .pipeline import DISCLAIMER, ChatPipeline, InquiryService, InquiryState
from .responses import REFLECTION, VERSE, classify_paragraph, normalize
from .reveal import Reveal
from .search import VerseSearch
from .store import InMemoryStore, JsonFileStore

LOCAL_OWNER = "local"

PARAGRAPH_PREFIX = {VERSE: "    | ", REFLECTION: "  * "}

HELP_TEXT = """Commands:
  /reset     - start a new conversation
  /history   - list saved inquiries
  /surahs    - list surahs in the corpus
  /surah N   - show the loaded verses of surah N
  /journeys  - list guided journeys
  /quit      - exit"""


def check_environment():
    """Check that required environment variables are set."""
    if not os.getenv("OPENAI_API_KEY"):
        print("Error: OPENAI_API_KEY environment variable not set.")
        print("Please set it in a .env file or export it in your shell.")
        sys.exit(1)


def answer_only_reveal(content: str) -> Reveal:
    """Reveal the answer text; follow-ups are printed separately."""
    return Reveal(normalize(content).answer)


def create_service(settings: Settings, log_dir: str = None) -> InquiryService:
    search = VerseSearch(settings.corpus_path)
    generator = AnswerGenerator(
        model=settings.model,
        api_key=settings.openai_api_key,
        timeout=settings.timeout,
        log_dir=log_dir,
    )
    pipeline = ChatPipeline(search, generator, max_tokens=settings.max_tokens)
    store = JsonFileStore(settings.store_path) if settings.store_path else InMemoryStore()
    session = Session(token="", identity=Identity(user_id=LOCAL_OWNER, email="", name="Local"))
    return InquiryService(pipeline, store, session, reveal_factory=answer_only_reveal)


def print_answer(content: str):
    """Print answer paragraphs, setting verses and reflections apart."""
    for paragraph in normalize(content).paragraphs:
        print(PARAGRAPH_PREFIX.get(classify_paragraph(paragraph), "") + paragraph)


def show_answer(service: InquiryService, question: str):
    """Ask, then type the answer out word by word. Ctrl-C skips the rest."""
    inquiry, reveal = service.ask(question)
    try:
        for piece in reveal.deltas():
            print(piece, end="", flush=True)
        print()
        service.finish_reveal()
    except KeyboardInterrupt:
        service.interrupt()
        print("\n[skipped - the full answer is saved, see /history]")
        return

    suggestions = inquiry.suggestions
    if suggestions:
        print("\nContinue the journey:")
        for s in suggestions:
            print(f"  - {s}")
    print(f"\n{DISCLAIMER}")


def interactive_mode(service: InquiryService):
    """Run interactive conversation mode."""
    print("=" * 60)
    print("QuranIQ - Islamic knowledge companion")
    print("=" * 60)
    print()
    print("Ask a question about the Quran.")
    print(HELP_TEXT)
    print()

    while True:
        try:
            user_input = input("question> ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nAssalamu alaikum!")
            break

        if not user_input:
            continue

        if user_input.startswith("/"):
            cmd = user_input.lower()

            if cmd in ["/quit", "/exit", "/q"]:
                print("Assalamu alaikum!")
                break

            elif cmd == "/reset":
                service.reset()
                print("Conversation reset.")
                continue

            elif cmd == "/history":
                for chapter in service.list_inquiries():
                    print(f"  {chapter['timestamp'][:16]}  {chapter['title']}")
                continue

            elif cmd == "/surahs":
                for surah in service.pipeline.search.list_surahs():
                    print(f"  {surah['number']:>3}. {surah['name']} ({surah['total_verses']} verses)")
                continue

            elif cmd.startswith("/surah "):
                try:
                    number = int(cmd.split()[1])
                except ValueError:
                    print("Usage: /surah N")
                    continue
                verses = service.pipeline.search.get_surah(number)
                if not verses:
                    print(f"Surah {number} is not in the corpus.")
                for v in verses:
                    print(f"  [{v.reference}] {v.text}")
                continue

            elif cmd == "/journeys":
                for journey in JOURNEYS.values():
                    print(f"  {journey.id}. {journey.title} ({len(journey.steps)} steps)")
                continue

            elif cmd == "/help":
                print(HELP_TEXT)
                continue

            else:
                print(f"Unknown command: {user_input}")
                continue

        print()
        show_answer(service, user_input)
        print()


def single_query_mode(service: InquiryService, query: str):
    """Process a single query and exit."""
    inquiry, _ = service.ask(query)
    service.finish_reveal()
    print_answer(inquiry.content)
    if inquiry.state is InquiryState.ERRORED_SETTLED:
        sys.exit(1)


def serve(host: str, port: int):
    import uvicorn

    uvicorn.run("quraniq.api:create_app", factory=True, host=host, port=port)


def main():
    """Main entry point."""
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = argparse.ArgumentParser(
        description="QuranIQ - Islamic knowledge companion",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "-q", "--query",
        type=str,
        help="Single query to process (non-interactive mode)"
    )
    parser.add_argument(
        "--model",
        type=str,
        help="OpenAI model to use (default: $GPT_MODEL or gpt-4o-mini)"
    )
    parser.add_argument(
        "--corpus",
        type=str,
        help="Path to a verses.json corpus"
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Run the HTTP API instead of the interactive prompt"
    )
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))

    args = parser.parse_args()

    if args.serve:
        serve(args.host, args.port)
        return

    check_environment()

    settings = Settings.from_env(dotenv=False)
    if args.model:
        settings.model = args.model
    if args.corpus:
        settings.corpus_path = args.corpus

    # Create log directory per run
    logs_root = Path(settings.log_dir) if settings.log_dir else Path.cwd() / "logs"
    run_log_dir = logs_root / datetime.now().strftime("%Y%m%d-%H%M%S")

    try:
        service = create_service(settings, log_dir=str(run_log_dir))
    except (OSError, ValueError) as e:
        print(f"Error creating QuranIQ: {e}", file=sys.stderr)
        sys.exit(1)

    if args.query:
        single_query_mode(service, args.query)
    else:
        interactive_mode(service)


if __name__ == "__main__":
    main()
