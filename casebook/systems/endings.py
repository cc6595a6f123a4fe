"""
Ending classification.

A pure function of accusation correctness, the share of clues found and
mean NPC affinity. Exactly one tier is returned.
"""

from ..state.schema import EndingType

TRUE_ENDING_CLUE_RATIO = 0.9
TRUE_ENDING_AFFINITY = 70
GOOD_ENDING_CLUE_RATIO = 0.7


def determine_ending(correct_culprit: bool, clue_ratio: float, avg_affinity: float) -> EndingType:
    """
    Classify the ending.

    - Wrong (or no) culprit: BAD, whatever else was achieved
    - Correct, >= 90% clues and mean affinity >= 70: TRUE
    - Correct, >= 70% clues: GOOD
    - Correct otherwise: NORMAL
    """
    if not correct_culprit:
        return EndingType.BAD
    if clue_ratio >= TRUE_ENDING_CLUE_RATIO and avg_affinity >= TRUE_ENDING_AFFINITY:
        return EndingType.TRUE
    if clue_ratio >= GOOD_ENDING_CLUE_RATIO:
        return EndingType.GOOD
    return EndingType.NORMAL


ENDING_TITLES: dict[EndingType, str] = {
    EndingType.TRUE: "The Whole Truth",
    EndingType.GOOD: "Justice Served",
    EndingType.NORMAL: "Case Closed",
    EndingType.BAD: "The Wrong Person",
}
