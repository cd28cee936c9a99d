"""
Impact Pipeline (orchestrator).

LangGraph-orchestrated state machine that turns one pull request event into
an impact report:

    gate -> check_configuration -> fetch_sources -> load_ticket
         -> analyze_impact -> generate_test_cases -> publish -> send_report

The gate routes straight to END when the event does not qualify. Fatal
errors raised by a node propagate out of ``run``; the publish node isolates
the ticket and test-management sinks from each other and from the pipeline.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional, TypedDict

from langgraph.graph import END, StateGraph

from impact_agent.analyzers.impact_analyzer import ImpactAnalyzer
from impact_agent.analyzers.result_parser import parse_impact_analysis, parse_test_cases
from impact_agent.config import ALLOWED_ACTIONS, PROTECTED_BRANCHES, Settings
from impact_agent.models.analysis import ImpactAnalysis, TestCaseSet
from impact_agent.models.api_response import PipelineResult, SyncedTestCase
from impact_agent.models.pr_event import TriggerEvent
from impact_agent.models.source import DiffBundle, TreeEntry
from impact_agent.models.ticket import TicketContext
from impact_agent.services.report_compiler import ReportSender
from impact_agent.services.source_fetcher import SourceFetcher
from impact_agent.services.test_case_sync import TestCaseSynchronizer
from impact_agent.services.ticket_client import TicketClient
from impact_agent.services.ticket_commenter import TicketCommenter, detect_ticket_key
from impact_agent.utils.diff_filter import filter_self_references
from impact_agent.utils.logging import get_logger, log_pipeline_event, log_stage_transition
from impact_agent.utils.metrics import PipelineMetrics, track_api_call

logger = get_logger(__name__)


class PipelineState(TypedDict):
    """State schema for the impact pipeline."""
    event: TriggerEvent
    skip_reason: Optional[str]
    diff: Optional[DiffBundle]
    tree: Optional[List[TreeEntry]]
    ticket_key: Optional[str]
    ticket: Optional[TicketContext]
    analysis: Optional[ImpactAnalysis]
    test_cases: Optional[TestCaseSet]
    ticket_comment_posted: bool
    synced_test_cases: List[SyncedTestCase]
    email_sent: bool
    stage: str


def evaluate_gate(event: TriggerEvent) -> Optional[str]:
    """
    Decide whether an event proceeds past the trigger gate.

    Predicates are checked in order and the first failure wins. Pure and
    total: never raises and performs no I/O.

    Returns:
        None if the event qualifies, otherwise the skip reason
    """
    if event.action not in ALLOWED_ACTIONS:
        return f"action '{event.action}' is not handled"
    if event.action == "closed" and not event.is_merged:
        return "pull request closed without merge"
    if event.base_ref not in PROTECTED_BRANCHES:
        return f"target branch '{event.base_ref}' is not master or main"
    return None


class ImpactPipeline:
    """
    Runs the event-to-report pipeline for one configuration.

    An instance serves one invocation at a time; create one per event.
    """

    def __init__(
        self,
        settings: Settings,
        source_fetcher: Optional[SourceFetcher] = None,
        analyzer: Optional[ImpactAnalyzer] = None,
        ticket_client: Optional[TicketClient] = None,
        synchronizer: Optional[TestCaseSynchronizer] = None,
        report_sender: Optional[ReportSender] = None,
    ):
        """
        Initialize the pipeline. Collaborators default to clients built from
        ``settings``; tests inject their own.
        """
        self.settings = settings
        timeout = settings.http_timeout_seconds

        self.source_fetcher = source_fetcher or SourceFetcher(
            token=settings.github_token,
            api_url=settings.github_api_url,
            self_reference_dir=settings.self_reference_dir,
            timeout=timeout,
        )
        self.analyzer = analyzer or ImpactAnalyzer(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            timeout=timeout,
        )
        self.ticket_client = ticket_client or TicketClient(
            email=settings.jira_email,
            token=settings.jira_token,
            timeout=timeout,
        )
        self.commenter = TicketCommenter(settings, self.ticket_client)
        self.synchronizer = synchronizer or TestCaseSynchronizer(
            base_url=settings.test_management_url,
            api_key=settings.test_management_api_key,
            project_id=settings.test_management_project_id,
            timeout=timeout,
        )
        self.report_sender = report_sender or ReportSender(settings)

        self.metrics: Optional[PipelineMetrics] = None
        self._log = logger
        self.graph = self._build_state_graph()

    def _build_state_graph(self):
        """
        Build the LangGraph state graph for the pipeline.

        Returns:
            Compiled graph
        """
        workflow = StateGraph(PipelineState)

        workflow.add_node("gate", self._gate_node)
        workflow.add_node("check_configuration", self._check_configuration_node)
        workflow.add_node("fetch_sources", self._fetch_sources_node)
        workflow.add_node("load_ticket", self._load_ticket_node)
        workflow.add_node("analyze_impact", self._analyze_impact_node)
        workflow.add_node("generate_test_cases", self._generate_test_cases_node)
        workflow.add_node("publish", self._publish_node)
        workflow.add_node("send_report", self._send_report_node)

        workflow.set_entry_point("gate")
        workflow.add_conditional_edges(
            "gate",
            lambda state: "skip" if state["skip_reason"] else "proceed",
            {"skip": END, "proceed": "check_configuration"},
        )
        workflow.add_edge("check_configuration", "fetch_sources")
        workflow.add_edge("fetch_sources", "load_ticket")
        workflow.add_edge("load_ticket", "analyze_impact")
        workflow.add_edge("analyze_impact", "generate_test_cases")
        workflow.add_edge("generate_test_cases", "publish")
        workflow.add_edge("publish", "send_report")
        workflow.add_edge("send_report", END)

        return workflow.compile()

    async def process_payload(self, payload: Dict[str, Any]) -> PipelineResult:
        """Run the pipeline for a raw webhook payload."""
        return await self.run(TriggerEvent.from_payload(payload))

    async def run(self, event: TriggerEvent) -> PipelineResult:
        """
        Execute one invocation.

        Args:
            event: Triggering pull request event

        Returns:
            PipelineResult with status 'skipped' or 'success'

        Raises:
            ConfigurationError, UpstreamError, ParseError: fatal failures
        """
        self._log = logger.with_context(pr_number=event.pr_number, repository=event.repo_full_name)
        log_pipeline_event(self._log, event.action, event.pr_number, event.repo_full_name, event.base_ref)

        self.metrics = PipelineMetrics(event.pr_number, event.repo_full_name)
        self.metrics.start()

        initial_state: PipelineState = {
            "event": event,
            "skip_reason": None,
            "diff": None,
            "tree": None,
            "ticket_key": None,
            "ticket": None,
            "analysis": None,
            "test_cases": None,
            "ticket_comment_posted": False,
            "synced_test_cases": [],
            "email_sent": False,
            "stage": "gate",
        }

        try:
            final_state = await self.graph.ainvoke(initial_state)
        except Exception as e:
            self._log.error(f"Pipeline failed: {e}", exc_info=True)
            self.metrics.complete(status="error", error_message=str(e))
            raise

        if final_state["skip_reason"]:
            self.metrics.status = "skipped"
            return PipelineResult(status="skipped", reason=final_state["skip_reason"])

        analysis: ImpactAnalysis = final_state["analysis"]
        test_cases: TestCaseSet = final_state["test_cases"]
        self.metrics.complete(status="success")

        return PipelineResult(
            status="success",
            risk=analysis.risk.score.value if analysis.risk.score else None,
            test_case_count=len(test_cases.test_cases),
        )

    async def close(self) -> None:
        """Release HTTP clients held by the collaborators."""
        for collaborator in (self.source_fetcher, self.analyzer, self.ticket_client, self.synchronizer):
            close = getattr(collaborator, "close", None)
            if close is not None:
                await close()

    def _stage_started(self, state: PipelineState, stage: str) -> float:
        state["stage"] = stage
        log_stage_transition(self._log, stage, "started")
        return time.time()

    def _stage_completed(self, stage: str, start_time: float) -> None:
        self.metrics.record_stage(stage, (time.time() - start_time) * 1000)
        log_stage_transition(self._log, stage, "completed")

    async def _gate_node(self, state: PipelineState) -> PipelineState:
        """Gate node: apply the trigger predicates."""
        event = state["event"]
        state["skip_reason"] = evaluate_gate(event)

        if state["skip_reason"]:
            self._log.info(f"Skipping event: {state['skip_reason']}")
        else:
            self._log.info(
                f"Pull request qualifies: {event.head_ref} -> {event.base_ref} (action {event.action})",
                extra={"idempotency_key": event.idempotency_key},
            )
        return state

    async def _check_configuration_node(self, state: PipelineState) -> PipelineState:
        """Check configuration node: abort before any network call if credentials are missing."""
        self.settings.require_core_credentials()
        return state

    async def _fetch_sources_node(self, state: PipelineState) -> PipelineState:
        """Fetch sources node: retrieve diff and tree, strip self-references."""
        start_time = self._stage_started(state, "fetch_sources")
        event = state["event"]

        async with track_api_call(self.metrics, "github"):
            raw_diff = await self.source_fetcher.fetch_diff(
                event.repo_owner, event.repo_name, event.base_ref, event.head_ref
            )
        async with track_api_call(self.metrics, "github"):
            state["tree"] = await self.source_fetcher.fetch_tree(
                event.repo_owner, event.repo_name, event.head_ref
            )

        state["diff"] = DiffBundle(
            raw=raw_diff,
            filtered=filter_self_references(raw_diff, self.settings.self_reference_dir),
        )

        self._log.info(
            "Sources fetched",
            extra={
                "diff_chars": len(raw_diff),
                "filtered_diff_chars": len(state["diff"].filtered),
                "tree_entries": len(state["tree"]) if state["tree"] is not None else None,
            },
        )
        self._stage_completed("fetch_sources", start_time)
        return state

    async def _load_ticket_node(self, state: PipelineState) -> PipelineState:
        """Load ticket node: detect the ticket key and load its context if possible."""
        start_time = self._stage_started(state, "load_ticket")
        event = state["event"]

        key = detect_ticket_key(event.pr_title, event.head_ref, event.pr_body)
        state["ticket_key"] = key

        if not key:
            self._log.info("No ticket key in PR; analysis proceeds without ticket context")
        elif not self.settings.jira_configured:
            self._log.info(f"Found ticket key {key} but ticketing service is not configured", extra={"ticket_key": key})
        else:
            async with track_api_call(self.metrics, "jira"):
                state["ticket"] = await self.ticket_client.get_ticket(self.settings.jira_url, key)
            if state["ticket"] is None:
                self._log.warning(f"Could not load ticket {key}; proceeding without ticket context", extra={"ticket_key": key})
            else:
                self._log.info(f"Loaded ticket {key}: {state['ticket'].title}", extra={"ticket_key": key})

        self._stage_completed("load_ticket", start_time)
        return state

    async def _analyze_impact_node(self, state: PipelineState) -> PipelineState:
        """Analyze impact node: request and parse the impact analysis."""
        start_time = self._stage_started(state, "analyze_impact")

        async with track_api_call(self.metrics, "llm"):
            content = await self.analyzer.summarize_impact(
                state["diff"].filtered, state["tree"], state["ticket"]
            )
        state["analysis"] = parse_impact_analysis(content)

        self._log.info(f"Impact analysis risk: {state['analysis'].risk.score}")
        self._stage_completed("analyze_impact", start_time)
        return state

    async def _generate_test_cases_node(self, state: PipelineState) -> PipelineState:
        """Generate test cases node: request and parse the manual test cases."""
        start_time = self._stage_started(state, "generate_test_cases")
        event = state["event"]

        async with track_api_call(self.metrics, "llm"):
            content = await self.analyzer.generate_test_cases(
                state["diff"].filtered, state["tree"], event.repo_owner, event.repo_name
            )
        state["test_cases"] = parse_test_cases(content)

        self.metrics.record_test_cases(len(state["test_cases"].test_cases))
        self._log.info(f"Generated {len(state['test_cases'].test_cases)} test cases")
        self._stage_completed("generate_test_cases", start_time)
        return state

    async def _publish_node(self, state: PipelineState) -> PipelineState:
        """Publish node: ticket comment and test-case sync, concurrently and independently."""
        start_time = self._stage_started(state, "publish")

        comment_result, sync_result = await asyncio.gather(
            self.commenter.post_analysis(
                state["event"], state["analysis"], state["test_cases"], state["ticket_key"]
            ),
            self.synchronizer.sync(state["test_cases"]),
            return_exceptions=True,
        )

        if isinstance(comment_result, BaseException):
            self._log.error(f"Ticket comment stage failed: {comment_result}", exc_info=comment_result)
            comment_result = False
        if isinstance(sync_result, BaseException):
            self._log.error(f"Test case synchronization failed: {sync_result}", exc_info=sync_result)
            sync_result = []

        state["ticket_comment_posted"] = comment_result
        state["synced_test_cases"] = sync_result
        self.metrics.record_ticket_comment(comment_result)
        self.metrics.record_sync(len(sync_result))

        self._stage_completed("publish", start_time)
        return state

    async def _send_report_node(self, state: PipelineState) -> PipelineState:
        """Send report node: email the compiled HTML report."""
        start_time = self._stage_started(state, "send_report")

        state["email_sent"] = await self.report_sender.send(
            state["event"], state["analysis"], state["test_cases"]
        )
        self.metrics.record_email(state["email_sent"])

        state["stage"] = "complete"
        self._stage_completed("send_report", start_time)
        return state
