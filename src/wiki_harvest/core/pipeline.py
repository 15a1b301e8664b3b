# ABOUTME: Batch pipeline driving fetch, map and validate over many wiki entries
# ABOUTME: Handles chunking, inter-batch delays, per-entry retries, degradation and statistics

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    stop_when_event_set,
    wait_incrementing,
)

from wiki_harvest.core.degradation import DegradationBuilder
from wiki_harvest.core.errors import ApiError, ErrorKind, FatalEntryError, HarvestError, PolicyError, ValidationError
from wiki_harvest.core.models import (
    AgentRecord,
    BatchResult,
    BatchStatistics,
    Entry,
    FailedEntry,
    Locale,
    LocalizedName,
    PipelineOptions,
    ProcessingStage,
    ProgressInfo,
)
from wiki_harvest.core.validator import RecordValidator
from wiki_harvest.extraction.base import ContentClient
from wiki_harvest.extraction.mapper import RecordMapper
from wiki_harvest.utils.logging import get_logger, with_entry_context, with_pipeline_context

SleepFunc = Callable[[float], Awaitable[None]]
ProgressCallback = Callable[[ProgressInfo], None]


def _is_recoverable(exception: BaseException) -> bool:
    return isinstance(exception, HarvestError) and exception.recoverable


@dataclass
class _EntryOutcome:
    """The single outcome one entry contributes to a run."""

    record: AgentRecord | None = None
    failure: FailedEntry | None = None
    attempts: int = 0
    degraded: bool = False

    @property
    def retries(self) -> int:
        return max(self.attempts - 1, 0)


@dataclass
class _AttemptState:
    attempts: int = 0
    stage: ProcessingStage = ProcessingStage.FETCH


class BatchPipeline:
    """Runs fetch → map → validate for a list of entries under a rate and retry policy.

    Entries are split into batches of ``batch_size``; a delay of
    ``inter_batch_delay_ms`` separates consecutive batches. Each entry is
    retried on recoverable errors with linear backoff, degraded to a minimal
    record when mapping never succeeds, and otherwise reported as failed.
    Per-entry errors never escape ``run``.
    """

    def __init__(
        self,
        client: ContentClient,
        mapper: RecordMapper | None = None,
        validator: RecordValidator | None = None,
        degradation: DegradationBuilder | None = None,
        *,
        primary_locale: Locale = Locale.JA_JP,
        secondary_locale: Locale | None = None,
        sleep: SleepFunc = asyncio.sleep,
        on_progress: ProgressCallback | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        """Initialize the pipeline.

        Args:
            client: Content source used to fetch raw payloads
            mapper: Payload mapper (defaults to a new RecordMapper)
            validator: Record validator (defaults to a new RecordValidator)
            degradation: Builder for degraded records (defaults to a new DegradationBuilder)
            primary_locale: Locale every record is mapped from
            secondary_locale: Optional locale used only for the localized name
            sleep: Coroutine used for retry backoff and inter-batch delays
            on_progress: Callback invoked after each entry completes
            logger: Logger to use (defaults to this module's logger)
        """
        self.client = client
        self.logger = logger or get_logger(__name__)
        self.mapper = mapper or RecordMapper(logger=self.logger)
        self.validator = validator or RecordValidator()
        self.degradation = degradation or DegradationBuilder()
        self.primary_locale = Locale(primary_locale)
        self.secondary_locale = Locale(secondary_locale) if secondary_locale else None
        self._sleep = sleep
        self.on_progress = on_progress

    async def run(
        self,
        entries: Sequence[Entry],
        options: PipelineOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchResult:
        """Process every entry and aggregate the outcome.

        Args:
            entries: Entries to harvest, in order
            options: Batch, delay and retry policy (defaults to PipelineOptions())
            cancel_event: When set, no new batch starts and no further retries happen

        Returns:
            BatchResult with one outcome per entry and run statistics
        """
        options = options or PipelineOptions()
        entries = list(entries)
        started_at = datetime.now(UTC)
        start = time.perf_counter()

        successful: list[AgentRecord] = []
        failed: list[FailedEntry] = []
        retries = 0
        degraded = 0

        batches = [entries[i : i + options.batch_size] for i in range(0, len(entries), options.batch_size)]

        with with_pipeline_context("batch", logger=self.logger, total=len(entries)) as log:
            log.info(
                "Starting batch run",
                batches=len(batches),
                batch_size=options.batch_size,
                concurrent=options.concurrent,
            )

            processed = 0
            for index, batch in enumerate(batches):
                if self._cancelled(cancel_event):
                    remaining = [entry for later in batches[index:] for entry in later]
                    log.warning("Run cancelled, skipping remaining entries", skipped=len(remaining))
                    failed.extend(self._cancelled_entry(entry) for entry in remaining)
                    break

                log.debug("Processing batch", batch=index + 1, entries=len(batch))
                if options.concurrent:
                    outcomes = await asyncio.gather(
                        *(self._process_entry(entry, options, cancel_event) for entry in batch)
                    )
                else:
                    outcomes = [await self._process_entry(entry, options, cancel_event) for entry in batch]

                for entry, outcome in zip(batch, outcomes, strict=True):
                    processed += 1
                    retries += outcome.retries
                    if outcome.record is not None:
                        successful.append(outcome.record)
                        degraded += int(outcome.degraded)
                    elif outcome.failure is not None:
                        failed.append(outcome.failure)
                    self._report_progress(processed, len(entries), entry, outcome, start)

                if index < len(batches) - 1 and options.inter_batch_delay_ms > 0:
                    if self._cancelled(cancel_event):
                        continue
                    log.debug("Waiting between batches", delay_ms=options.inter_batch_delay_ms)
                    await self._sleep(options.inter_batch_delay_ms / 1000)

            finished_at = datetime.now(UTC)
            total = len(entries)
            statistics = BatchStatistics(
                total=total,
                successful=len(successful),
                failed=len(failed),
                retries=retries,
                degraded=degraded,
                success_rate=len(successful) / total if total else 0.0,
                processing_time_ms=(time.perf_counter() - start) * 1000,
                started_at=started_at,
                finished_at=finished_at,
            )

            log.info(
                "Batch run complete",
                successful=statistics.successful,
                failed=statistics.failed,
                retries=statistics.retries,
                degraded=statistics.degraded,
                success_rate=round(statistics.success_rate, 3),
                processing_time_ms=round(statistics.processing_time_ms, 1),
            )

        return BatchResult(successful=successful, failed=failed, statistics=statistics)

    async def _process_entry(
        self, entry: Entry, options: PipelineOptions, cancel_event: asyncio.Event | None
    ) -> _EntryOutcome:
        if not entry.id or not entry.id.strip():
            self.logger.error("Skipping entry without id", source_ref=entry.source_ref)
            error = FatalEntryError("entry has no id", field="id")
            return _EntryOutcome(failure=self._failure(entry, error, ProcessingStage.ENTRY, attempts=0))

        state = _AttemptState()
        base_delay = options.inter_batch_delay_ms / 1000

        stop = stop_after_attempt(options.max_retries_per_item + 1)
        if cancel_event is not None:
            stop = stop | stop_when_event_set(cancel_event)

        with with_entry_context(entry.id, logger=self.logger, source_ref=entry.source_ref) as log:

            def log_retry(retry_state: RetryCallState) -> None:
                exception = retry_state.outcome.exception() if retry_state.outcome else None
                log.warning(
                    "Entry attempt failed, retrying",
                    attempt=retry_state.attempt_number,
                    stage=state.stage.value,
                    error=str(exception),
                    wait_seconds=retry_state.upcoming_sleep,
                )

            retrying = AsyncRetrying(
                stop=stop,
                wait=wait_incrementing(start=base_delay, increment=base_delay),
                retry=retry_if_exception(_is_recoverable),
                sleep=self._sleep,
                before_sleep=log_retry,
                reraise=True,
            )

            try:
                async for attempt in retrying:
                    with attempt:
                        record = await self._attempt(entry, state, log)
            except HarvestError as e:
                e.with_entry(entry.id)
                return self._handle_exhausted(entry, e, state, options, cancel_event, log)
            except Exception as e:
                log.error("Unexpected error processing entry", stage=state.stage.value, error=str(e))
                error = FatalEntryError(f"{type(e).__name__}: {e}", entry_id=entry.id, cause=e)
                return _EntryOutcome(
                    failure=self._failure(entry, error, state.stage, state.attempts), attempts=state.attempts
                )

            log.info("Entry harvested", attempts=state.attempts)
            return _EntryOutcome(record=record, attempts=state.attempts)

    async def _attempt(self, entry: Entry, state: _AttemptState, log: structlog.stdlib.BoundLogger) -> AgentRecord:
        state.attempts += 1

        state.stage = ProcessingStage.FETCH
        try:
            payload = await self.client.fetch(entry.source_ref, self.primary_locale)
        except HarvestError:
            raise
        except Exception as e:
            raise ApiError(f"fetch failed: {type(e).__name__}: {e}", entry_id=entry.id, cause=e) from e

        state.stage = ProcessingStage.MAPPING
        record = self.mapper.map(payload, entry, self.primary_locale)
        if self.secondary_locale is not None and self.secondary_locale != self.primary_locale:
            record = await self._localize(entry, record, log)

        state.stage = ProcessingStage.VALIDATION
        result = self.validator.validate(record)
        if not result.is_valid:
            raise ValidationError(
                f"record failed validation: {'; '.join(result.errors)}", errors=result.errors, entry_id=entry.id
            )
        if result.warnings:
            log.debug("Record has validation warnings", warnings=result.warnings)
        return record

    async def _localize(self, entry: Entry, record: AgentRecord, log: structlog.stdlib.BoundLogger) -> AgentRecord:
        """Fill the secondary-locale name; failures keep the primary name."""
        locale = self.secondary_locale
        try:
            payload = await self.client.fetch(entry.source_ref, locale)
            name = self.mapper.extract_name(payload)
        except Exception as e:
            log.warning(
                "Secondary locale unavailable, keeping primary name",
                locale=locale.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            return record

        if locale == Locale.EN_US:
            localized = LocalizedName(ja=record.name.ja, en=name)
        else:
            localized = LocalizedName(ja=name, en=record.name.en)
        return record.model_copy(update={"name": localized})

    def _handle_exhausted(
        self,
        entry: Entry,
        error: HarvestError,
        state: _AttemptState,
        options: PipelineOptions,
        cancel_event: asyncio.Event | None,
        log: structlog.stdlib.BoundLogger,
    ) -> _EntryOutcome:
        if self._cancelled(cancel_event) or not self._should_degrade(error, options):
            log.error(
                "Entry failed",
                stage=state.stage.value,
                error_kind=error.kind.value,
                attempts=state.attempts,
                error=str(error),
            )
            return _EntryOutcome(
                failure=self._failure(entry, error, state.stage, state.attempts), attempts=state.attempts
            )

        log.warning("Entry exhausted retries, degrading", attempts=state.attempts, error=str(error))
        try:
            record = self.degradation.build_minimal(entry)
        except HarvestError as degrade_error:
            log.error("Degradation failed", error=str(degrade_error))
            return _EntryOutcome(
                failure=self._failure(entry, degrade_error, ProcessingStage.DEGRADATION, state.attempts),
                attempts=state.attempts,
            )
        return _EntryOutcome(record=record, attempts=state.attempts, degraded=True)

    @staticmethod
    def _should_degrade(error: HarvestError, options: PipelineOptions) -> bool:
        match error.kind:
            case ErrorKind.MAPPING:
                return True
            case ErrorKind.API:
                return options.degrade_fetch_failures
            case _:
                return False

    @staticmethod
    def _failure(entry: Entry, error: HarvestError, stage: ProcessingStage, attempts: int) -> FailedEntry:
        return FailedEntry(
            entry_id=entry.id,
            error=str(error) or type(error).__name__,
            stage=stage,
            error_kind=error.kind,
            attempts=attempts,
        )

    @staticmethod
    def _cancelled_entry(entry: Entry) -> FailedEntry:
        return FailedEntry(
            entry_id=entry.id, error="run cancelled before entry started", stage=ProcessingStage.CANCELLED
        )

    @staticmethod
    def _cancelled(cancel_event: asyncio.Event | None) -> bool:
        return cancel_event is not None and cancel_event.is_set()

    def _report_progress(self, current: int, total: int, entry: Entry, outcome: _EntryOutcome, start: float) -> None:
        if self.on_progress is None:
            return
        if outcome.record is None:
            stage = "failed"
        else:
            stage = "degraded" if outcome.degraded else "completed"
        info = ProgressInfo(
            current=current,
            total=total,
            entry_id=entry.id,
            stage=stage,
            elapsed_ms=(time.perf_counter() - start) * 1000,
        )
        try:
            self.on_progress(info)
        except Exception as e:
            self.logger.warning("Progress callback failed", error=str(e), entry_id=entry.id)


def validate_pipeline_outcome(result: BatchResult, min_success_rate: float) -> None:
    """Judge a completed run against the accepted success rate.

    Raises:
        PolicyError: If the run's success rate is below ``min_success_rate``
    """
    rate = result.statistics.success_rate
    if rate < min_success_rate:
        raise PolicyError(
            f"Success rate {rate:.1%} is below the required {min_success_rate:.1%}",
            success_rate=rate,
            min_success_rate=min_success_rate,
            failed_ids=[failure.entry_id for failure in result.failed],
        )
