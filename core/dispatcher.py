# core/dispatcher.py
import asyncio
import logging
from typing import Iterable, Mapping
from uuid import uuid4
from core.engine_adapters import EngineAdapter
from core.prompts import build_eval_prompt
from model.engine import Engine
from model.entity import GroundTruthEntity
from model.evaluation import EvaluationRecord
from repository.evaluation_repository import EvaluationRepository
from util.errors import DispatchFailed
from util.functions import utc_now
from util.timing import timed

logger = logging.getLogger(__name__)

# Tasks still running after a dispatch gave up waiting. Held here so they are
# not garbage collected before they finish writing their record.
_stragglers: set[asyncio.Task] = set()


def _reap(task: asyncio.Task) -> None:
    _stragglers.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("dispatch.straggler.error err=%s", type(exc).__name__)
    else:
        logger.info("dispatch.straggler.persisted record=%s", task.result().id)


class EngineDispatcher:
    """
    Fans one audit out to every requested engine. Each branch evaluates and
    persists on its own; a branch that raises is recorded as failed without
    touching the others. Stragglers past the dispatch timeout keep running and
    may still append their record later.
    """

    def __init__(
        self,
        adapters: Mapping[Engine, EngineAdapter],
        evaluations: EvaluationRepository,
        timeout: float,
    ) -> None:
        self._adapters = adapters
        self._evaluations = evaluations
        self._timeout = timeout

    async def _evaluate_and_persist(
        self, entity: GroundTruthEntity, engine: Engine, prompt: str
    ) -> EvaluationRecord:
        outcome = await self._adapters[engine].evaluate(prompt)
        record = EvaluationRecord(
            id=str(uuid4()),
            tenant_id=entity.tenant_id,
            entity_id=entity.id,
            engine=engine,
            accuracy_score=outcome.accuracy_score,
            inaccuracies=outcome.inaccuracies,
            raw_reply=outcome.raw_reply,
            prompt_used=prompt,
            is_fallback=outcome.is_fallback,
            created_at=utc_now(),
        )
        await self._evaluations.add(record)
        return record

    async def dispatch_all(
        self, entity: GroundTruthEntity, engines: Iterable[Engine] | None = None
    ) -> list[EvaluationRecord]:
        wanted = list(dict.fromkeys(engines if engines is not None else Engine))
        if not wanted:
            raise DispatchFailed()

        prompt = build_eval_prompt(entity)
        with timed(logger, "dispatch.all", entity=entity.id, engines=len(wanted)):
            tasks = {
                asyncio.create_task(self._evaluate_and_persist(entity, e, prompt)): e
                for e in wanted
            }
            done, pending = await asyncio.wait(tasks, timeout=self._timeout)

        for task in pending:
            logger.warning("dispatch.straggler engine=%s", tasks[task].value)
            _stragglers.add(task)
            task.add_done_callback(_reap)

        by_engine: dict[Engine, EvaluationRecord] = {}
        for task in done:
            exc = task.exception()
            if exc is not None:
                logger.error(
                    "dispatch.persist.error engine=%s err=%s",
                    tasks[task].value,
                    type(exc).__name__,
                    exc_info=exc,
                )
                continue
            by_engine[tasks[task]] = task.result()

        logger.info(
            "dispatch.settled entity=%s persisted=%d failed=%d pending=%d",
            entity.id,
            len(by_engine),
            len(done) - len(by_engine),
            len(pending),
        )
        if not by_engine:
            raise DispatchFailed()
        return [by_engine[e] for e in wanted if e in by_engine]

    async def dispatch_one(
        self, entity: GroundTruthEntity, engine: Engine
    ) -> EvaluationRecord:
        records = await self.dispatch_all(entity, [engine])
        return records[0]
