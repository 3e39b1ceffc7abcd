"""SRS stage progression for WaniKani's 9-stage system."""
from dataclasses import dataclass
from enum import IntEnum


class SRSStage(IntEnum):
    INITIATE = 0
    APPRENTICE_1 = 1
    APPRENTICE_2 = 2
    APPRENTICE_3 = 3
    APPRENTICE_4 = 4
    GURU_1 = 5
    GURU_2 = 6
    MASTER = 7
    ENLIGHTENED = 8
    BURNED = 9

    @property
    def display_name(self) -> str:
        if self == SRSStage.INITIATE:
            return "Initiate"
        elif self <= SRSStage.APPRENTICE_4:
            return "Apprentice"
        elif self <= SRSStage.GURU_2:
            return "Guru"
        elif self == SRSStage.MASTER:
            return "Master"
        elif self == SRSStage.ENLIGHTENED:
            return "Enlightened"
        return "Burned"

    @classmethod
    def coerce(cls, value: int) -> "SRSStage":
        """Return the stage for value, or INITIATE if it is not a known stage."""
        try:
            return cls(value)
        except ValueError:
            return cls.INITIATE


MIN_DEMOTED_STAGE = SRSStage.APPRENTICE_1


@dataclass(frozen=True)
class SRSResult:
    new_stage: SRSStage
    did_level_up: bool
    did_level_down: bool


def calculate_result(current_stage: int, incorrect_answers: int) -> SRSResult:
    """Calculate the stage an item moves to after a review.

    Args:
        current_stage: Stage before the review (0-9, anything else is Initiate)
        incorrect_answers: Total incorrect meaning + reading answers

    Returns:
        SRSResult with the new stage and level up/down flags.

    This is a local preview only; the server's review response is the
    system of record for the stored stage.
    """
    current = SRSStage.coerce(current_stage)
    new_raw = int(current)

    if incorrect_answers == 0:
        new_raw += 1
    else:
        # Guru and above fall two stages
        new_raw -= 2 if current >= SRSStage.GURU_1 else 1
        new_raw = max(new_raw, MIN_DEMOTED_STAGE)

    new_stage = SRSStage(min(new_raw, SRSStage.BURNED))
    return SRSResult(
        new_stage=new_stage,
        did_level_up=new_stage > current,
        did_level_down=new_stage < current,
    )


def stage_name(stage: int) -> str:
    """Display name for a raw stage value, "Unknown" outside 0-9."""
    if not SRSStage.INITIATE <= stage <= SRSStage.BURNED:
        return "Unknown"
    return SRSStage(stage).display_name
