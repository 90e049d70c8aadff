"""Priority ordering and size-bounded selection of candidate files."""

import logging

from repograde.models.model_repository import CandidateFile

logger = logging.getLogger(__name__)


def sort_by_priority(candidates: list[CandidateFile]) -> list[CandidateFile]:
    """Order candidates by priority class, highest first.

    The sort is stable: files of equal priority keep their discovery order.
    """
    return sorted(candidates, key=lambda c: c.priority_class, reverse=True)


def select_within_budget(
    candidates: list[CandidateFile],
    max_total_bytes: int,
) -> list[CandidateFile]:
    """Greedily accept candidates while the running total stays within budget.

    Single forward pass: a file that does not fit is skipped for good, and
    scanning continues so later, smaller files may still be accepted. This
    is not a best-fit packing.

    Args:
        candidates: Candidates in priority order.
        max_total_bytes: Aggregate UTF-8 size ceiling.

    Returns:
        Accepted candidates, in input order.
    """
    accepted: list[CandidateFile] = []
    total = 0
    for candidate in candidates:
        if total + candidate.size_bytes <= max_total_bytes:
            accepted.append(candidate)
            total += candidate.size_bytes
        else:
            logger.debug(
                f"Rejected {candidate.path} ({candidate.size_bytes} bytes): "
                f"would exceed {max_total_bytes} byte budget at {total}"
            )

    logger.info(
        f"Selected {len(accepted)}/{len(candidates)} files "
        f"({total}/{max_total_bytes} bytes)"
    )
    return accepted
