"""
Shared fixtures for the QuranIQ tests.
"""

import sys
from pathlib import Path
from types import SimpleNamespace

import httpx

sys.path.insert(0, str(Path(__file__).parent.parent))

from quraniq.auth import Identity, Session
from quraniq.utils.types import Verse


PATIENCE = Verse(
    surah_name="Al-Baqarah",
    surah_number=2,
    ayah_number=155,
    text="And We will surely test you with something of fear and hunger and a loss "
         "of wealth and lives and fruits, but give good tidings to the patient.",
    topics=("patience", "trials"),
)
GRATITUDE = Verse(
    surah_name="Ibrahim",
    surah_number=14,
    ayah_number=7,
    text="If you are grateful, I will surely increase you.",
    topics=("gratitude", "blessings"),
)
EQUALITY = Verse(
    surah_name="Al-Hujurat",
    surah_number=49,
    ayah_number=13,
    text="The most noble of you in the sight of Allah is the most righteous of you.",
    topics=("equality", "righteousness"),
)
EASE_5 = Verse(
    surah_name="Ash-Sharh",
    surah_number=94,
    ayah_number=5,
    text="For indeed, with hardship will be ease.",
    topics=("hardship", "hope"),
)
EASE_6 = Verse(
    surah_name="Ash-Sharh",
    surah_number=94,
    ayah_number=6,
    text="Indeed, with hardship will be ease.",
    topics=("hardship", "hope"),
)

CORPUS = [EASE_6, GRATITUDE, PATIENCE, EQUALITY, EASE_5]

PATIENCE_QUESTION = "What does the Quran say about patience?"

MODEL_ANSWER = (
    "Patience (sabr) is a recurring theme. [Surah Al-Baqarah 2:155] reminds us that trials are certain.\n"
    "\n"
    "Ask yourself: where is patience being asked of me today?\n"
    ":::FOLLOW_UPS:::\n"
    '["How did the Prophet practise patience?", "What is the reward for patience?"]'
)


def completion(content):
    """Shape of an OpenAI chat completion carrying `content`."""
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def status_error(cls, status: int):
    """Build an openai status error as the SDK raises it."""
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(status, request=request)
    return cls("provider error", response=response, body=None)


def session_for(user_id):
    """A signed-in session for user_id, without a real token."""
    return Session(token="", identity=Identity(user_id=user_id, email=f"{user_id}@example.com", name=user_id))


def no_sleep(_seconds):
    pass
