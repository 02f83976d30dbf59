"""
LangGraph 상태 정의 모듈
문장 분리 파이프라인의 상태를 TypedDict로 정의
"""
from datetime import datetime
from typing import Literal, Optional, TypedDict

from bilingual_splitter.processors import AlignmentSignal, SplitMode, SplitResult


class SplitState(TypedDict, total=False):
    """
    문장 분리 파이프라인 전체 상태

    LangGraph의 각 노드는 이 상태를 읽고 업데이트합니다.
    """
    # === 입력 ===
    english: str                    # 영어 원문
    korean: Optional[str]           # 한글 해석 (선택)
    model: str                      # 생성 모델 ID
    requested_mode: SplitMode       # 요청된 모드

    # === 중간 상태 ===
    mode: SplitMode                 # 실제 실행 모드 (parallel → ai-verify 전환 반영)
    regex_result: Optional[SplitResult]         # Regex 기준선 결과
    alignment: Optional[AlignmentSignal]        # 번역 정렬 분석 (hybrid 판단용)
    escalated: bool                 # hybrid 모드에서 AI로 전환했는지

    # === 출력 ===
    result: Optional[SplitResult]   # 최종 결과

    # === 제어 ===
    current_node: str               # 현재 실행 중인 노드
    status: Literal["pending", "running", "completed", "failed"]  # 파이프라인 상태
    error: Optional[str]            # 에러 메시지
    failure: Optional[Exception]    # 실패 원인 예외 (호출자에게 다시 전달)
    started_at: str                 # 시작 시간
    completed_at: Optional[str]     # 완료 시간


def create_initial_state(
    english: str,
    korean: Optional[str] = None,
    model: str = "",
    mode: SplitMode = SplitMode.PARALLEL,
) -> SplitState:
    """
    초기 상태 생성

    Args:
        english: 영어 원문
        korean: 한글 해석 (선택)
        model: 생성 모델 ID
        mode: 분리 모드

    Returns:
        초기화된 SplitState
    """
    return SplitState(
        english=english or "",
        korean=korean,
        model=model,
        requested_mode=mode,
        mode=mode,
        regex_result=None,
        alignment=None,
        escalated=False,
        result=None,
        current_node="",
        status="pending",
        error=None,
        failure=None,
        started_at=datetime.now().isoformat(),
        completed_at=None,
    )


def get_state_summary(state: SplitState) -> dict:
    """
    상태 요약 정보 반환

    Args:
        state: 현재 상태

    Returns:
        요약 딕셔너리
    """
    result = state.get("result")
    requested = state.get("requested_mode")
    mode = state.get("mode")
    return {
        "requested_mode": requested.value if requested else None,
        "mode": mode.value if mode else None,
        "model": state.get("model"),
        "status": state.get("status", "pending"),
        "current_node": state.get("current_node", ""),
        "escalated": state.get("escalated", False),
        "sentence_count": result.sentence_count if result else 0,
        "method": result.method.value if result else None,
        "error": state.get("error"),
        "started_at": state.get("started_at"),
        "completed_at": state.get("completed_at"),
    }
