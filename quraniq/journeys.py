"""
Guided journeys and per-user progress.
Completed steps only ever accumulate.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from .errors import ValidationError
from .store import USERS, RecordStore


@dataclass(frozen=True)
class Step:
    id: int
    title: str
    type: str  # read, action, practice, challenge, reflection
    duration: str
    content: str


@dataclass(frozen=True)
class Journey:
    id: int
    title: str
    subtitle: str
    description: str
    steps: Tuple[Step, ...]

    @property
    def step_ids(self) -> List[int]:
        return [s.id for s in self.steps]


JOURNEYS: Dict[int, Journey] = {
    1: Journey(
        id=1,
        title="Finding Inner Peace (Sakinah)",
        subtitle="Trust in Allah's Plan",
        description="A guided path away from the noise of the world and back to the Source of Peace (As-Salam).",
        steps=(
            Step(1, "The Nature of Dunya", "read", "5 min",
                 "Peace begins when we stop expecting Jannah on Earth. 'Verily, in the remembrance of Allah do hearts find rest.' (13:28)"),
            Step(2, "Purification (Wudu) with Intent", "action", "3 min",
                 "Perform ablution to wash away the heaviness of the soul, not only to clean the body."),
            Step(3, "Dhikr for Anxiety", "practice", "10 min",
                 "Sit somewhere quiet and repeat 'HasbunAllahu wa ni'mal wakeel' (Allah is sufficient for us)."),
            Step(4, "The Gratitude Journal", "action", "5 min",
                 "Write down five things you are grateful for today that money cannot buy."),
            Step(5, "Tahajjud Prayer", "challenge", "20 min",
                 "Wake up before Fajr and ask in the last third of the night for what your heart truly needs."),
            Step(6, "Complete Surrender (Tawakkul)", "reflection", "10 min",
                 "Picture handing your biggest worry to Allah, trusting that His plan is better than your dreams."),
        ),
    ),
    2: Journey(
        id=2,
        title="The Prayer Journey (Salah)",
        subtitle="Mastering the Connection",
        description="Turn daily prayer from routine obligation into a recharging conversation with your Creator.",
        steps=(
            Step(1, "The Call (Adhan)", "read", "5 min",
                 "When you hear the Adhan, stop everything. It is a personal invitation."),
            Step(2, "Mastering Wudu", "action", "4 min",
                 "Perform Wudu slowly, conscious of each step."),
            Step(3, "Understanding Al-Fatiha", "read", "15 min",
                 "The opening chapter is a dialogue. Reflect on each ayah as you recite it."),
            Step(4, "Khushoo in Ruku & Sujood", "practice", "10 min",
                 "Lengthen your bowing and prostration; the servant is closest to their Lord in Sujood."),
            Step(5, "Post-Prayer Dhikr", "practice", "5 min",
                 "Stay after prayer for SubhanAllah, Alhamdulillah and Allahu Akbar, 33 times each."),
        ),
    ),
    3: Journey(
        id=3,
        title="Prophetic Character (Akhlaq)",
        subtitle="Walking in His Footsteps",
        description="Adopt the manners of the Prophet Muhammad (PBUH) to improve your relationships and inner state.",
        steps=(
            Step(1, "Truthfulness (Siddiq)", "read", "5 min",
                 "Speak the truth even if your voice shakes."),
            Step(2, "Smile as Charity", "action", "1 day",
                 "Smile at everyone you meet today; it is a charity that softens hearts."),
            Step(3, "Kindness to Kin", "challenge", "10 min",
                 "Call a relative you have not spoken to in a while."),
            Step(4, "Controlling Anger", "reflection", "10 min",
                 "When angry, change your posture and seek refuge in Allah."),
        ),
    ),
}


def get_journey(journey_id: int) -> Journey:
    try:
        return JOURNEYS[int(journey_id)]
    except (KeyError, TypeError, ValueError):
        raise ValidationError(f"Unknown journey: {journey_id}")


def journey_progress(progress_map: dict, journey_id: int) -> dict:
    """Progress entry for one journey, defaulting to a fresh start."""
    entry = (progress_map or {}).get(str(journey_id)) or {}
    return {
        "completed": sorted(int(s) for s in entry.get("completed", [])),
        "currentStepId": int(entry.get("currentStepId", 1)),
    }


def update_progress(progress_map: dict, journey_id: int, step_id: int) -> dict:
    """
    Mark a step complete and return the new progress map.

    The input map is not modified. Completed steps are the union of what
    was already completed and step_id; the current step moves to the first
    step not yet completed.

    Raises:
        ValidationError: unknown journey or step
    """
    journey = get_journey(journey_id)
    try:
        step_id = int(step_id)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid step: {step_id}")
    if step_id not in journey.step_ids:
        raise ValidationError(f"Unknown step {step_id} for journey {journey.id}")

    current = journey_progress(progress_map, journey.id)
    completed = sorted(set(current["completed"]) | {step_id})
    remaining = [s for s in journey.step_ids if s not in completed]
    next_step = remaining[0] if remaining else journey.step_ids[-1]

    updated = dict(progress_map or {})
    updated[str(journey.id)] = {"completed": completed, "currentStepId": next_step}
    return updated


class JourneyService:
    """Reads and writes journey progress on user records."""

    def __init__(self, store: RecordStore):
        self.store = store

    def get_progress(self, user_id: str) -> dict:
        record = self.store.get(USERS, user_id)
        return record.fields.get("journeyProgress") or {}

    def record_step(self, user_id: str, journey_id: int, step_id: int) -> dict:
        progress = update_progress(self.get_progress(user_id), journey_id, step_id)
        self.store.update(USERS, user_id, {"journeyProgress": progress})
        return progress
