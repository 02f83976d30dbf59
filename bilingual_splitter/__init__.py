"""
Bilingual Splitter 메인 모듈
영어 지문과 한글 해석을 문장 단위로 분리하고 정렬을 검증하는 엔진
"""
from .state import (
    SplitState,
    create_initial_state,
    get_state_summary,
)

from .graph import (
    create_split_graph,
    compile_graph,
    SplitDispatcher,
    BatchItem,
    BatchOutcome,
    split_passage,
    split_passages,
)


__all__ = [
    # State
    "SplitState",
    "create_initial_state",
    "get_state_summary",
    # Graph
    "create_split_graph",
    "compile_graph",
    "SplitDispatcher",
    "BatchItem",
    "BatchOutcome",
    "split_passage",
    "split_passages",
]

__version__ = "0.1.0"
