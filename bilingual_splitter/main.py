"""
Bilingual Splitter CLI
영어 지문과 한글 해석을 문장 단위로 분리하는 명령줄 인터페이스
"""
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from bilingual_splitter.api import BatchPassage, SentenceSplitAPI, SplitRequest, SplitResponse
from bilingual_splitter.processors import (
    AISplitter,
    ParallelExtractor,
    RegexSplitter,
    SplitMode,
    SplitResult,
    TranslationAnalyzer,
)
from bilingual_splitter.utils import MODEL_REGISTRY, LLMClient, settings

# 콘솔 및 앱 초기화
console = Console()
app = typer.Typer(
    name="bilingual-splitter",
    help="영어 지문/한글 해석 문장 분리 및 정렬 검증 도구",
    add_completion=False,
    rich_markup_mode="rich",
)


# === 유틸리티 함수 ===

def setup_logging(verbose: bool) -> None:
    """로깅 설정 (--verbose 시 DEBUG)"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def print_header(title: str):
    """헤더 출력"""
    console.print(Panel(f"[bold blue]{title}[/bold blue]", expand=False))


def print_success(message: str):
    """성공 메시지 출력"""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str):
    """에러 메시지 출력"""
    console.print(f"[red]✗[/red] {escape(message)}")


def print_warning(message: str):
    """경고 메시지 출력"""
    console.print(f"[yellow]![/yellow] {escape(message)}")


def print_info(message: str):
    """정보 메시지 출력"""
    console.print(f"[blue]ℹ[/blue] {message}")


def read_text(text: Optional[str], file: Optional[Path]) -> Optional[str]:
    """옵션 텍스트 또는 파일 내용"""
    if text is not None:
        return text
    if file is not None:
        return file.read_text(encoding="utf-8")
    return None


def parse_mode(mode: Optional[str]) -> SplitMode:
    try:
        return SplitMode.parse(mode or settings.default_mode)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)


def create_sentence_table(result: SplitResult) -> Table:
    """문장 테이블 생성"""
    table = Table(
        title=f"문장 분리 결과 ({result.sentence_count}개, {result.method.value})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("#", style="dim", width=3)
    table.add_column("영어", style="white", max_width=60)
    table.add_column("한글", style="green", max_width=40)
    table.add_column("단어", justify="right", width=5)
    table.add_column("신뢰도", justify="right", width=6)

    for sentence in result.sentences:
        table.add_row(
            str(sentence.index),
            escape(sentence.content),
            escape(sentence.korean_translation or "-"),
            str(sentence.word_count),
            f"{sentence.confidence:.2f}",
        )

    return table


def create_issue_table(result: SplitResult) -> Table:
    """한글 번역 문제 테이블 생성"""
    table = Table(title="한글 번역 문제", show_header=True, header_style="bold magenta")
    table.add_column("문장", width=4)
    table.add_column("유형", style="cyan", width=10)
    table.add_column("심각도", width=6)
    table.add_column("검토", width=4)
    table.add_column("설명", style="white", max_width=60)

    severity_styles = {"high": "red", "medium": "yellow", "low": "dim"}
    for issue in result.korean_issues:
        style = severity_styles[issue.severity.value]
        table.add_row(
            str(issue.sentence_index) if issue.sentence_index else "전체",
            issue.kind.value,
            f"[{style}]{issue.severity.value}[/{style}]",
            "예" if issue.needs_review else "-",
            escape(issue.description),
        )

    return table


def print_failure(response: SplitResponse):
    """실패 응답 출력 (재시도/모델 변경 안내 포함)"""
    error = response.error or {}
    print_error(f"문장 분리 실패 [{error.get('category')}/{error.get('kind')}]: {error.get('message')}")

    if error.get("category") == "fidelity":
        if error.get("offset", -1) >= 0:
            console.print(f"  [dim]원본:[/dim] {escape(error.get('original_context') or '')}")
            console.print(f"  [dim]AI:  [/dim] {escape(error.get('produced_context') or '')}")
        console.print("[yellow]AI가 원문을 변형했습니다. 명시적으로 다시 시도하세요.[/yellow]")
    elif error.get("retryable"):
        console.print("[yellow]일시적인 오류입니다. 잠시 후 다시 시도하세요.[/yellow]")

    if error.get("alternative_model"):
        console.print(f"[dim]대안 모델: --model {error['alternative_model']}[/dim]")


def build_prompt_preview(mode: SplitMode, english: str, korean: Optional[str]) -> Optional[str]:
    """예상 비용 계산용 프롬프트 (regex 모드는 None)"""
    has_korean = bool(korean and korean.strip())
    if mode == SplitMode.REGEX:
        return None
    if mode == SplitMode.PARALLEL and has_korean:
        return ParallelExtractor.PROMPT_TEMPLATE.format(english=english, korean=korean)
    if mode == SplitMode.AI or mode == SplitMode.HYBRID:
        korean_section = AISplitter.KOREAN_REFERENCE_TEMPLATE.format(korean=korean) if has_korean else ""
        return AISplitter.SPLIT_PROMPT_TEMPLATE.format(text=english, korean_section=korean_section)

    baseline = RegexSplitter().split(english)
    return AISplitter.VERIFY_PROMPT_TEMPLATE.format(
        text=english,
        count=baseline.sentence_count,
        regex_sentences="\n".join(f'{s.index}. "{s.content}"' for s in baseline.sentences),
    )


# === split 명령어 ===

@app.command("split", help="지문 문장 분리")
def split(
    text: Optional[str] = typer.Option(
        None, "--text", "-t",
        help="영어 원문"
    ),
    file: Optional[Path] = typer.Option(
        None, "--file", "-f",
        help="영어 원문 파일",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    korean: Optional[str] = typer.Option(
        None, "--korean", "-k",
        help="한글 해석"
    ),
    korean_file: Optional[Path] = typer.Option(
        None, "--korean-file",
        help="한글 해석 파일",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    mode: Optional[str] = typer.Option(
        None, "--mode", "-m",
        help="분리 모드 (regex, ai, hybrid, ai-verify, parallel)"
    ),
    model: Optional[str] = typer.Option(
        None, "--model",
        help="생성 모델 ID (기본: settings에서)"
    ),
    as_json: bool = typer.Option(
        False, "--json",
        help="JSON으로 출력"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run",
        help="실제 호출 없이 예상 비용만 계산"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="상세 로그 출력"
    ),
):
    """
    영어 지문을 문장으로 분리합니다.

    사용 예시:

        # Regex 분리
        bilingual-splitter split --text "Dr. Smith arrived. He left." --mode regex

        # 한글 해석과 병렬 추출
        bilingual-splitter split --file passage.txt --korean-file passage_ko.txt
    """
    setup_logging(verbose)

    english = read_text(text, file)
    if english is None:
        print_error("--text 또는 --file 중 하나를 지정해야 합니다.")
        raise typer.Exit(1)
    korean_text = read_text(korean, korean_file)
    split_mode = parse_mode(mode)
    model_id = model or settings.default_model

    if dry_run:
        print_warning("Dry run 모드: 생성 모델을 호출하지 않습니다.")
        prompt = build_prompt_preview(split_mode, english, korean_text)
        if prompt is None:
            print_info("regex 모드는 생성 모델을 사용하지 않습니다 (비용 없음).")
            return
        estimate = LLMClient().estimate_cost(prompt, model_id)
        table = Table(title="예상 비용", show_header=True, header_style="bold magenta")
        table.add_column("항목", style="cyan")
        table.add_column("값", style="green")
        for key, value in estimate.items():
            table.add_row(key, f"{value:,}" if isinstance(value, int) else str(value))
        console.print(table)
        return

    api = SentenceSplitAPI()
    try:
        with console.status(f"[cyan]{split_mode.value} 모드로 분리 중...", spinner="dots"):
            response = api.split(SplitRequest(
                english=english,
                korean=korean_text,
                model=model_id,
                mode=split_mode.value,
            ))
    except KeyboardInterrupt:
        print_warning("\n분리가 중단되었습니다.")
        raise typer.Exit(130)
    finally:
        api.shutdown()

    if as_json:
        console.print_json(json.dumps(response.to_dict(), ensure_ascii=False))
        if not response.success:
            raise typer.Exit(1)
        return

    if not response.success:
        print_failure(response)
        raise typer.Exit(1)

    result = response.result
    print_header("Bilingual Splitter")
    console.print(f"모드: [cyan]{split_mode.value}[/cyan] → 결과: [cyan]{result.method.value}[/cyan]")
    if result.model:
        console.print(f"모델: [cyan]{result.model}[/cyan]")
    console.print(f"신뢰도: [cyan]{result.confidence:.2f}[/cyan]  ({response.response_time_ms:,}ms)")
    console.print()

    console.print(create_sentence_table(result))

    for warning in result.warnings:
        print_warning(warning)

    if result.korean_issues:
        console.print()
        console.print(create_issue_table(result))

    if response.translation_status:
        status = response.translation_status
        console.print()
        console.print(
            f"[bold]번역 정렬:[/bold] {status.alignment} / 품질 {status.quality} "
            f"(영 {status.english_count}, 한 {status.korean_count})"
        )
        for signal in status.signals:
            console.print(f"  [dim]- {escape(signal)}[/dim]")

    console.print()
    print_success(f"{result.sentence_count}개 문장 분리 완료")


# === batch 명령어 ===

@app.command("batch", help="여러 지문 일괄 분리")
def batch(
    input_file: Path = typer.Argument(
        ...,
        help="지문 목록 JSON 파일 ([{id, english, korean}] 또는 {passages: [...]})",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o",
        help="결과 JSON 저장 경로"
    ),
    mode: Optional[str] = typer.Option(
        None, "--mode", "-m",
        help="분리 모드 (regex, ai, hybrid, ai-verify, parallel)"
    ),
    model: Optional[str] = typer.Option(
        None, "--model",
        help="생성 모델 ID"
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c",
        help="동시 실행 수 (기본: settings에서)",
        min=1,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="상세 로그 출력"
    ),
):
    """JSON 파일의 지문들을 일괄 분리합니다."""
    setup_logging(verbose)

    try:
        data = json.loads(input_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        print_error(f"JSON 파싱 실패: {e}")
        raise typer.Exit(1)

    if isinstance(data, dict):
        data = data.get("passages", [])
    if not isinstance(data, list) or not data:
        print_error("지문 목록이 비어 있습니다.")
        raise typer.Exit(1)

    passages = [BatchPassage.from_dict(item) for item in data]
    split_mode = parse_mode(mode)

    print_header("Bilingual Splitter - Batch")
    console.print(f"지문: [cyan]{len(passages)}개[/cyan]  모드: [cyan]{split_mode.value}[/cyan]")
    console.print()

    api = SentenceSplitAPI()
    try:
        with console.status("[cyan]일괄 분리 중...", spinner="dots"):
            response = api.split_batch(passages, mode=split_mode.value, model=model, max_concurrency=concurrency)
    except KeyboardInterrupt:
        print_warning("\n분리가 중단되었습니다.")
        raise typer.Exit(130)
    finally:
        api.shutdown()

    table = Table(title="배치 결과", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="cyan")
    table.add_column("결과", width=6)
    table.add_column("방법", width=10)
    table.add_column("문장", justify="right", width=5)
    table.add_column("비고", style="dim", max_width=50)

    for item in response.results:
        if item.success:
            note = f"한글 문제 {len(item.result.korean_issues)}건" if item.result.korean_issues else ""
            table.add_row(item.passage_id, "[green]성공[/green]", item.result.method.value, str(item.sentence_count), note)
        else:
            error = item.error or {}
            table.add_row(item.passage_id, "[red]실패[/red]", "-", "-", escape(f"{error.get('kind')}: {error.get('message', '')[:40]}"))

    console.print(table)

    summary = response.summary()
    console.print()
    console.print(
        f"총 {summary['total']}개 / 성공 [green]{summary['success']}[/green] / "
        f"실패 [red]{summary['failed']}[/red] / 문장 {summary['totalSentences']}개 "
        f"({response.response_time_ms:,}ms)"
    )

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(response.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        print_success(f"결과 저장: {output}")

    if summary["failed"]:
        raise typer.Exit(1)


# === analyze 명령어 ===

@app.command("analyze", help="번역 정렬 분석")
def analyze(
    text: Optional[str] = typer.Option(None, "--text", "-t", help="영어 원문"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="영어 원문 파일", exists=True, dir_okay=False),
    korean: Optional[str] = typer.Option(None, "--korean", "-k", help="한글 해석"),
    korean_file: Optional[Path] = typer.Option(None, "--korean-file", help="한글 해석 파일", exists=True, dir_okay=False),
    as_json: bool = typer.Option(False, "--json", help="JSON으로 출력"),
):
    """생성 모델 없이 영어/한글 문장 수와 번역 품질 신호를 분석합니다."""
    english = read_text(text, file)
    if english is None:
        print_error("--text 또는 --file 중 하나를 지정해야 합니다.")
        raise typer.Exit(1)

    signal = TranslationAnalyzer().analyze(english, read_text(korean, korean_file))

    if as_json:
        console.print_json(json.dumps(signal.to_dict(), ensure_ascii=False))
        return

    print_header("번역 정렬 분석")
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("항목", style="cyan")
    table.add_column("값", style="green")
    table.add_row("번역 있음", "예" if signal.has_translation else "아니오")
    table.add_row("문장 수 (영/한)", f"{signal.english_count} / {signal.korean_count}")
    table.add_row("정렬", signal.alignment)
    table.add_row("품질", signal.quality)
    table.add_row("의심 점수", str(signal.suspicion_level))
    table.add_row("AI 필요", "예" if signal.needs_ai else "아니오")
    console.print(table)

    for s in signal.signals:
        print_warning(s)


# === models 명령어 ===

@app.command("models", help="지원 모델 목록")
def models():
    """지원하는 생성 모델과 토큰 단가를 출력합니다."""
    table = Table(title="지원 모델", show_header=True, header_style="bold cyan")
    table.add_column("모델 ID", style="cyan")
    table.add_column("이름")
    table.add_column("제공자", style="yellow")
    table.add_column("등급")
    table.add_column("입력 $/1K", justify="right")
    table.add_column("출력 $/1K", justify="right")

    for model_id, info in MODEL_REGISTRY.items():
        name = f"{info.name} (기본)" if model_id == settings.default_model else info.name
        table.add_row(
            model_id,
            name,
            info.provider.value,
            info.tier,
            f"{info.input_cost_per_1k:.6f}",
            f"{info.output_cost_per_1k:.6f}",
        )

    console.print(table)


@app.command("version", help="버전 정보")
def version():
    """버전 정보를 출력합니다."""
    from bilingual_splitter import __version__
    console.print(f"[bold]Bilingual Splitter[/bold] v{__version__}")
    console.print("영어 지문/한글 해석 문장 분리 및 정렬 검증 도구")


@app.command("info", help="시스템 정보")
def info():
    """시스템 및 설정 정보를 출력합니다."""
    print_header("시스템 정보")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("항목", style="cyan")
    table.add_column("값", style="green")

    table.add_row("기본 모델", settings.default_model)
    table.add_row("기본 모드", settings.default_mode)
    table.add_row("Temperature", str(settings.temperature))
    table.add_row("요청 타임아웃", f"{settings.request_timeout}초")
    table.add_row("hybrid 임계값", str(settings.hybrid_confidence_threshold))
    table.add_row("배치 동시 실행", str(settings.batch_concurrency))
    table.add_row("OpenAI 키", "설정됨" if settings.openai_api_key else "-")
    table.add_row("Anthropic 키", "설정됨" if settings.anthropic_api_key else "-")
    table.add_row("Gemini 키", "설정됨" if settings.google_api_key else "-")

    console.print(table)


# === 메인 엔트리 ===

def main():
    """메인 엔트리 포인트"""
    app()


if __name__ == "__main__":
    main()
