"""
Will synthesis pipeline.

1. Extraction - Recognize facts in each utterance
2. Merge - Fold deltas into the Fact Model monotonically
3. Synthesis - Render the will from the current facts
4. Stages - Decide when each collection stage is complete

The conversation orchestrator lives in willforge.pipeline.orchestrator.
"""

from willforge.pipeline.extraction import extract, rederive_facts
from willforge.pipeline.merge import MergeResult, merge_facts
from willforge.pipeline.synthesis import render, synthesize, to_roman
from willforge.pipeline.stages import StageBlockedError, StageController

__all__ = [
    "extract",
    "rederive_facts",
    "MergeResult",
    "merge_facts",
    "render",
    "synthesize",
    "to_roman",
    "StageBlockedError",
    "StageController",
]
