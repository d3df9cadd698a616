"""Structural safety check for whole-script rewrites."""

import logging
import re
from typing import Dict, List, Mapping, Optional, Pattern

from .types import OperationCounts

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_THRESHOLD = 0.9

# JavaScript and Python spellings of Playwright calls
OPERATION_PATTERNS: Dict[str, Pattern[str]] = {
    "interactions": re.compile(
        r"\.(?:click|dblclick|fill|press|check|uncheck|selectOption|select_option"
        r"|setInputFiles|set_input_files|hover|tap|type|press_sequentially|pressSequentially)\s*\("
    ),
    "assertions": re.compile(r"\bexpect\s*\("),
    "navigations": re.compile(r"\.(?:goto|go_back|goBack|go_forward|goForward|reload)\s*\("),
}


def count_operations(
    script: str,
    patterns: Optional[Mapping[str, Pattern[str]]] = None,
) -> OperationCounts:
    """Count characteristic operation invocations in ``script``."""
    patterns = patterns or OPERATION_PATTERNS
    counts = {name: len(pattern.findall(script)) for name, pattern in patterns.items()}
    return counts  # type: ignore[return-value]


def find_regressions(
    original: Mapping[str, int],
    rewritten: Mapping[str, int],
    threshold: float = DEFAULT_SAFETY_THRESHOLD,
) -> List[str]:
    """
    Categories whose rewritten count fell below ``threshold`` of the original.

    Categories absent from the original script are never regressions.
    """
    regressions = []
    for name, before in original.items():
        if before <= 0:
            continue
        after = rewritten.get(name, 0)
        # Tolerance keeps 9/10 at a 0.9 threshold on the accepting side
        if after / before < threshold - 1e-9:
            regressions.append(name)
    return regressions


def check_operation_counts(
    original_script: str,
    rewritten_script: str,
    threshold: float = DEFAULT_SAFETY_THRESHOLD,
) -> bool:
    """
    Return True when ``rewritten_script`` keeps enough of every operation.

    Guards against a rewrite that silently drops steps, which prompt
    instructions alone cannot prevent.
    """
    before = count_operations(original_script)
    after = count_operations(rewritten_script)
    regressions = find_regressions(before, after, threshold)
    if regressions:
        details = ", ".join(f"{name} {after[name]}/{before[name]}" for name in regressions)
        logger.debug(f"Rewritten script rejected, operation counts dropped: {details}")
        return False
    return True
