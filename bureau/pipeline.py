"""
bureau report pipeline

one document per call: sufficiency gate (with optional OCR fallback),
table + rule extraction, optional external interpreter, per-field
reconciliation, then assembly. all per-document state lives in a
PipelineContext, nothing is kept on the pipeline between calls.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from loguru import logger

from config import Config
from bureau.assembler import assemble, dedupe_loans
from bureau.domain_knowledge import (
    ACCOUNT_SECTION_END_MARKERS,
    ACCOUNT_SECTION_MARKERS,
    CLEAN_DPD,
    ENQUIRY_SECTION_END_MARKERS,
    ENQUIRY_SECTION_MARKERS,
)
from bureau.interpreter import InterpreterCandidate, normalize_candidate
from bureau.models import (
    AcquisitionFailure,
    EnquiryRecord,
    LoanAccount,
    PipelineOutcome,
    TOTAL_FIELDS,
    Totals,
)
from bureau.reconciler import ANCHOR, EXTERNAL, RULE, RULE_SUM, Reconciler
from bureau.rules import (
    extract_anchor_totals,
    extract_enquiry_count,
    extract_score,
    has_possible_delinquency,
    line_scan_loans,
    line_scan_totals,
    rule_sum_totals,
    summarize_dpd,
)
from bureau.segmenter import iter_sections
from bureau.table_parser import ENQUIRY_TABLE, LOAN_TABLE, extract_rows

UNREADABLE_REMEDIATION = (
    "We could not read enough text from this report. Please upload the original "
    "PDF downloaded from the bureau website, or a clearer scan of every page."
)
NO_DATA_REMEDIATION = (
    "We could not find a credit score or any loan totals in this document. Please "
    "check that it is a complete Experian, CIBIL, CRIF or Equifax report and upload "
    "the original PDF."
)

REQUIRED_FIELDS = ("score",) + tuple(TOTAL_FIELDS)


class TextSource(Protocol):
    def extract_native_text(self, document: Any) -> str:
        ...


class TextRecognizer(Protocol):
    def recognize_text(self, document: Any) -> str:
        ...


class ReportInterpreter(Protocol):
    def interpret_report_text(self, text: str) -> Any:
        ...


@dataclass
class PipelineContext:
    """everything one run knows about its document"""
    document: Any
    text: str
    ocr_attempted: bool = False
    ocr_used: bool = False
    account_block: Optional[str] = None
    enquiry_block: Optional[str] = None
    table_loans: List[LoanAccount] = field(default_factory=list)
    table_enquiries: List[EnquiryRecord] = field(default_factory=list)
    rule_score: Optional[int] = None
    rule_enquiry_count: Optional[int] = None
    anchors: Dict[str, float] = field(default_factory=dict)
    rule_sums: Dict[str, float] = field(default_factory=dict)
    external: Optional[InterpreterCandidate] = None
    interpreter_error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


class BureauReportPipeline:
    """turns bureau report text into an ExtractionResult"""

    def __init__(self, text_source: Optional[TextSource] = None,
                 recognizer: Optional[TextRecognizer] = None,
                 interpreter: Optional[ReportInterpreter] = None,
                 min_native_chars: int = Config.MIN_NATIVE_TEXT_CHARS,
                 min_readable_chars: int = Config.MIN_READABLE_CHARS,
                 strategy: Optional[Mapping[str, Sequence[str]]] = None,
                 score_top_window: int = Config.SCORE_TOP_WINDOW,
                 dpd_lookahead: int = Config.DPD_LOOKAHEAD):
        self.text_source = text_source
        self.recognizer = recognizer
        self.interpreter = interpreter
        self.min_native_chars = min_native_chars
        self.min_readable_chars = min_readable_chars
        self.reconciler = Reconciler(strategy=dict(strategy or {}))
        self.score_top_window = score_top_window
        self.dpd_lookahead = dpd_lookahead

    # sufficiency gate

    def is_sufficient(self, text: Optional[str]) -> bool:
        return len((text or "").strip()) >= self.min_native_chars

    def is_unreadable(self, text: Optional[str]) -> bool:
        return len((text or "").strip()) < self.min_readable_chars

    # entry points

    def process_document(self, document) -> PipelineOutcome:
        """native text layer first, OCR when that is too thin"""
        text = ""
        if self.text_source is not None:
            try:
                text = self.text_source.extract_native_text(document) or ""
            except Exception as e:
                logger.warning(f"Native text extraction failed: {str(e)}")
        return self._run(PipelineContext(document=document, text=text))

    def process_text(self, text: str, document=None) -> PipelineOutcome:
        """run on text already pulled out of the document"""
        return self._run(PipelineContext(document=document, text=text or ""))

    def _run(self, ctx: PipelineContext) -> PipelineOutcome:
        logger.info("=" * 60)
        logger.info(f"Processing report ({len(ctx.text.strip())} chars of native text)")

        failure = self._acquire(ctx)
        if failure is not None:
            # unreadable input never reaches the interpreter
            return PipelineOutcome(success=False, failure=failure, warnings=ctx.warnings)

        self._extract_tables(ctx)
        self._extract_rules(ctx)
        self._interpret(ctx)

        candidates = self._collect_candidates(ctx)
        failure = self._check_usable(ctx, candidates)
        if failure is not None:
            return PipelineOutcome(success=False, failure=failure, warnings=ctx.warnings)

        decisions = self.reconciler.decide_all(candidates)
        loans = self._select_loans(ctx)
        enquiries = self._select_enquiries(ctx)

        # DPD depends on which loans won
        rule_dpd = summarize_dpd(loans, ctx.text, self.dpd_lookahead)
        dpd_decision = self.reconciler.decide("dpd", {
            RULE: rule_dpd if rule_dpd != CLEAN_DPD else None,
            EXTERNAL: ctx.external.dpd if ctx.external else None,
        })
        decisions["dpd"] = dpd_decision

        if has_possible_delinquency(ctx.text, self.dpd_lookahead):
            ctx.warnings.append(
                "Possible delinquency found near the DPD / payment history section. "
                "This check is approximate, please review it manually."
            )

        totals = Totals(**{
            attr: decisions[key].value for key, attr in TOTAL_FIELDS.items()
        })
        result = assemble(
            loans=loans,
            enquiries=enquiries,
            score=decisions["score"].value,
            enquiry_count=decisions["enquiryCount"].value,
            dpd=dpd_decision.value,
            totals=totals,
        )

        sources = {name: decision.source for name, decision in decisions.items()}
        sources["text"] = "ocr" if ctx.ocr_used else "native"
        logger.success(f"Report processed, sources: {sources}")
        return PipelineOutcome(success=True, result=result, warnings=ctx.warnings, sources=sources)

    # stages

    def _acquire(self, ctx: PipelineContext) -> Optional[AcquisitionFailure]:
        native_chars = len(ctx.text.strip())

        if not self.is_sufficient(ctx.text):
            logger.warning(f"Only {native_chars} chars of native text, trying OCR")
            self._try_ocr(ctx)

        if self.is_unreadable(ctx.text):
            chars = len(ctx.text.strip())
            logger.error(f"Document unreadable: {chars} chars after OCR fallback")
            return AcquisitionFailure(
                kind="unreadable_document",
                message="The uploaded report does not contain enough readable text.",
                remediation=UNREADABLE_REMEDIATION,
                details={
                    "characters": chars,
                    "minimum": self.min_readable_chars,
                    "ocrAttempted": ctx.ocr_attempted,
                },
            )
        return None

    def _try_ocr(self, ctx: PipelineContext):
        if self.recognizer is None or ctx.document is None:
            logger.info("No OCR available for this document")
            return

        ctx.ocr_attempted = True
        try:
            ocr_text = self.recognizer.recognize_text(ctx.document) or ""
        except Exception as e:
            logger.warning(f"OCR failed, keeping native text: {str(e)}")
            ctx.warnings.append("Text recognition failed, the original text layer was used.")
            return

        if len(ocr_text.strip()) > len(ctx.text.strip()):
            logger.success(f"Using OCR text ({len(ocr_text.strip())} chars)")
            ctx.text = ocr_text
            ctx.ocr_used = True
        else:
            logger.warning("OCR returned less text than the native layer, ignoring it")

    def _find_table(self, text, markers, end_markers, table):
        """first section under any marker that yields rows, with the rows"""
        for block in iter_sections(text, markers, end_markers):
            rows = extract_rows(block, table=table)
            if rows:
                return block, rows
        return None, []

    def _extract_tables(self, ctx: PipelineContext):
        ctx.account_block, ctx.table_loans = self._find_table(
            ctx.text, ACCOUNT_SECTION_MARKERS, ACCOUNT_SECTION_END_MARKERS, LOAN_TABLE
        )
        if not ctx.table_loans:
            # no usable section, the two-token header rule keeps this safe on narrative text
            ctx.table_loans = extract_rows(ctx.text, table=LOAN_TABLE)
        # repeated rows (page overlap) must not be summed twice
        ctx.table_loans = dedupe_loans(ctx.table_loans)

        ctx.enquiry_block, ctx.table_enquiries = self._find_table(
            ctx.text, ENQUIRY_SECTION_MARKERS, ENQUIRY_SECTION_END_MARKERS, ENQUIRY_TABLE
        )
        if not ctx.table_enquiries:
            logger.info("No enquiry table found")

    def _extract_rules(self, ctx: PipelineContext):
        ctx.rule_score = extract_score(ctx.text, self.score_top_window)
        ctx.rule_enquiry_count = extract_enquiry_count(ctx.text, ctx.table_enquiries)
        ctx.anchors = extract_anchor_totals(ctx.text)

        if ctx.table_loans:
            ctx.rule_sums = rule_sum_totals(ctx.table_loans)
        else:
            ctx.rule_sums = line_scan_totals(ctx.text)

    def _interpret(self, ctx: PipelineContext):
        if self.interpreter is None:
            return

        try:
            raw = self.interpreter.interpret_report_text(ctx.text)
            ctx.external = normalize_candidate(raw)
        except Exception as e:
            ctx.interpreter_error = str(e)
            logger.warning(f"Interpreter failed, continuing with rule-based values: {str(e)}")
            ctx.warnings.append(
                "The AI reading of this report failed, values come from the report's "
                "printed summaries and tables only."
            )

    def _collect_candidates(self, ctx: PipelineContext) -> Dict[str, Dict[str, Any]]:
        external = ctx.external
        candidates = {}
        for key in TOTAL_FIELDS:
            candidates[key] = {
                ANCHOR: ctx.anchors.get(key),
                RULE_SUM: ctx.rule_sums.get(key),
                EXTERNAL: external.totals.get(key) if external else None,
            }
        candidates["score"] = {
            RULE: ctx.rule_score,
            EXTERNAL: external.score if external else None,
        }
        candidates["enquiryCount"] = {
            RULE: ctx.rule_enquiry_count,
            EXTERNAL: external.enquiry_count if external else None,
        }
        return candidates

    def _check_usable(self, ctx, candidates) -> Optional[AcquisitionFailure]:
        if any(Reconciler.has_candidate(candidates[name]) for name in REQUIRED_FIELDS):
            return None

        logger.error("No usable candidate for score or any total")
        details = {"interpreterError": ctx.interpreter_error} if ctx.interpreter_error else {}
        return AcquisitionFailure(
            kind="no_usable_data",
            message="No credit score or loan totals could be extracted from this report.",
            remediation=NO_DATA_REMEDIATION,
            details=details,
        )

    def _select_loans(self, ctx: PipelineContext) -> List[LoanAccount]:
        if ctx.table_loans:
            return ctx.table_loans
        if ctx.external is not None:
            logger.info("No accounts table, using interpreter loans")
            return ctx.external.loans
        return line_scan_loans(ctx.text)

    def _select_enquiries(self, ctx: PipelineContext) -> List[EnquiryRecord]:
        if ctx.table_enquiries:
            return ctx.table_enquiries
        if ctx.external is not None:
            return ctx.external.enquiries
        return []
