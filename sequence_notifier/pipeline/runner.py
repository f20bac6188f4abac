"""Notification run orchestration: stream, match, render, dispatch."""

import contextvars
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import closing
from typing import Any, List, Mapping, Optional, Union
from uuid import uuid4

from sequence_notifier.domain.models import (
    CustomerRecord,
    NotificationRequest,
    RenderedMessage,
    parse_request,
)
from sequence_notifier.logging import get_logger
from sequence_notifier.logging.context import log_context
from sequence_notifier.matching.engine import SequenceMatcher
from sequence_notifier.matching.models import MatchSet
from sequence_notifier.notifications.channels import DeliveryChannel
from sequence_notifier.notifications.models import (
    AuthenticationError,
    Credentials,
    NotificationTemplateError,
)
from sequence_notifier.notifications.service import NotificationService
from sequence_notifier.notifications.templates import MessageRenderer
from sequence_notifier.sources.base import RecordSource, SourceItem
from sequence_notifier.utils.timestamps import utc_now

from .models import PipelineRunResult, RecordOutcome, RecordStatus

logger = get_logger(__name__, component="pipeline")

OutcomeSlot = Union[RecordOutcome, "Future[RecordOutcome]"]


class NotificationPipeline:
    """
    Orchestrates one notification run over a record source.

    Every record is matched against the request markers; matching records
    get one personalised message through the delivery channel. A failure
    on one record never stops the next one.
    """

    def __init__(
        self,
        source: RecordSource,
        channel: DeliveryChannel,
        renderer: MessageRenderer,
        notification_service: Optional[NotificationService] = None,
        credentials: Optional[Credentials] = None,
        dispatch_workers: int = 1,
    ):
        """
        Initialize the notification pipeline.

        Args:
            source: Record source to stream from
            channel: Delivery channel, authenticated once per run
            renderer: Builds messages for matched records
            notification_service: Send step with retries (defaults if None)
            credentials: Credentials passed to channel.authenticate()
            dispatch_workers: Threads used for the send step (1 = sequential)
        """
        if dispatch_workers < 1:
            raise ValueError(f"dispatch_workers must be at least 1, got: {dispatch_workers}")

        self.source = source
        self.channel = channel
        self.renderer = renderer
        self.notification_service = notification_service or NotificationService(channel)
        self.credentials = credentials
        self.dispatch_workers = dispatch_workers

    def run(
        self,
        request: Union[NotificationRequest, Mapping[str, Any]],
        cancel_event: Optional[threading.Event] = None,
        timeout_seconds: Optional[float] = None,
    ) -> PipelineRunResult:
        """
        Execute one notification run.

        This method:
        1. Validates the request
        2. Authenticates the channel once, before pulling any record
        3. Streams records; each is fetched → matched or skipped → rendered → dispatched
        4. Stops pulling records when cancelled or timed out
        5. Closes the source iterator and the channel

        Args:
            request: NotificationRequest or raw payload using the inbound aliases
            cancel_event: Set from another thread to stop pulling records
            timeout_seconds: Stop pulling records after this many seconds

        Returns:
            PipelineRunResult with per-record outcomes in source order

        Raises:
            InputValidationError: If the request is invalid (nothing is processed)
            AuthenticationError: If the channel rejects the credentials
            RecordSourceError: If the record store fails
        """
        if not isinstance(request, NotificationRequest):
            request = parse_request(request)
        matcher = SequenceMatcher(request.start_marker, request.end_marker)

        run_id = uuid4().hex
        run_started_at = utc_now()
        deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None

        with log_context(run_id=run_id):
            logger.info(
                "Notification run started",
                extra={
                    "event": "pipeline.run.started",
                    "start_marker": request.start_marker,
                    "end_marker": request.end_marker,
                    "dispatch_workers": self.dispatch_workers,
                },
            )

            try:
                self._authenticate()
                slots, cancelled = self._process_stream(
                    request, matcher, run_id, cancel_event, deadline
                )
            finally:
                self.channel.close()

            result = PipelineRunResult(
                run_id=run_id,
                run_started_at=run_started_at,
                run_finished_at=utc_now(),
                outcomes=[slot.result() if isinstance(slot, Future) else slot for slot in slots],
                cancelled=cancelled,
            )

            logger.info(
                "Notification run completed",
                extra={
                    "event": "pipeline.run.completed",
                    "duration_ms": int(result.total_duration_seconds * 1000),
                    "total_records": result.total_records,
                    "total_skipped": result.total_skipped,
                    "total_dispatched": result.total_dispatched,
                    "total_dispatch_failed": result.total_dispatch_failed,
                    "total_fetch_failed": result.total_fetch_failed,
                    "cancelled": result.cancelled,
                },
            )

            return result

    def _authenticate(self) -> None:
        try:
            self.channel.authenticate(self.credentials)
        except AuthenticationError as e:
            logger.error(
                f"Channel authentication failed: {e}",
                extra={"event": "pipeline.run.auth_failed", "channel": self.channel.name},
            )
            raise

    def _process_stream(
        self,
        request: NotificationRequest,
        matcher: SequenceMatcher,
        run_id: str,
        cancel_event: Optional[threading.Event],
        deadline: Optional[float],
    ):
        """Pull and process records until the stream ends or the run is cancelled."""
        slots: List[OutcomeSlot] = []
        cancelled = False
        executor = (
            ThreadPoolExecutor(max_workers=self.dispatch_workers, thread_name_prefix="dispatch")
            if self.dispatch_workers > 1
            else None
        )

        try:
            items = self.source.stream(request.start_marker, request.end_marker)
            with closing(items):
                while True:
                    if self._should_stop(cancel_event, deadline):
                        cancelled = True
                        logger.warning(
                            "Notification run cancelled",
                            extra={
                                "event": "pipeline.run.cancelled",
                                "processed": len(slots),
                                "timed_out": not (cancel_event and cancel_event.is_set()),
                            },
                        )
                        break

                    item = next(items, None)
                    if item is None:
                        break

                    with log_context(record_index=item.index):
                        slots.append(self._process_item(item, request, matcher, executor))
        finally:
            # In-flight dispatches complete even when the stream fails
            if executor is not None:
                executor.shutdown(wait=True)

        return slots, cancelled

    @staticmethod
    def _should_stop(cancel_event: Optional[threading.Event], deadline: Optional[float]) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    def _process_item(
        self,
        item: SourceItem,
        request: NotificationRequest,
        matcher: SequenceMatcher,
        executor: Optional[ThreadPoolExecutor],
    ) -> OutcomeSlot:
        """Match and render one record, then dispatch inline or on the executor."""
        if item.error is not None:
            logger.warning(
                f"Record could not be fetched: {item.error}",
                extra={"event": "pipeline.record.fetch_failed"},
            )
            return RecordOutcome(
                index=item.index,
                email=None,
                status=RecordStatus.FETCH_FAILED,
                error=str(item.error),
            )

        record = item.record
        try:
            match_set = matcher.evaluate(record)
            if match_set is None:
                return RecordOutcome(index=item.index, email=record.email, status=RecordStatus.SKIPPED)

            message = self.renderer.render(record, request.message_template, match_set.as_list())

        except NotificationTemplateError as e:
            logger.error(
                f"Message for {record.email} could not be rendered: {e}",
                extra={"event": "pipeline.record.render_failed"},
            )
            return RecordOutcome(
                index=item.index,
                email=record.email,
                status=RecordStatus.DISPATCH_FAILED,
                matches=match_set.matches,
                error=str(e),
            )
        except Exception as e:
            # Contained to this record; the stream continues
            logger.error(
                f"Unexpected error processing record {item.index}: {e}",
                extra={"event": "pipeline.record.error", "error_type": type(e).__name__},
                exc_info=True,
            )
            return RecordOutcome(
                index=item.index,
                email=record.email,
                status=RecordStatus.DISPATCH_FAILED,
                error=str(e),
            )

        if executor is None:
            return self._dispatch(item.index, record, match_set, message)

        # Copy the context so the worker logs with this run id and record index
        ctx = contextvars.copy_context()
        return executor.submit(ctx.run, self._dispatch, item.index, record, match_set, message)

    def _dispatch(
        self,
        index: int,
        record: CustomerRecord,
        match_set: MatchSet,
        message: RenderedMessage,
    ) -> RecordOutcome:
        try:
            result = self.notification_service.dispatch(message)
        except Exception as e:
            logger.error(
                f"Unexpected error dispatching to {record.email}: {e}",
                extra={"event": "pipeline.record.error", "error_type": type(e).__name__},
                exc_info=True,
            )
            return RecordOutcome(
                index=index,
                email=record.email,
                status=RecordStatus.DISPATCH_FAILED,
                matches=match_set.matches,
                attempts=1,
                error=str(e),
            )

        return RecordOutcome(
            index=index,
            email=record.email,
            status=RecordStatus.DISPATCHED if result.sent else RecordStatus.DISPATCH_FAILED,
            matches=match_set.matches,
            attempts=result.attempts,
            error=result.error,
        )
