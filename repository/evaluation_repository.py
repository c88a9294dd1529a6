# repository/evaluation_repository.py
from typing import Final, Optional
from redis.asyncio import Redis
from config.cache import get_redis
from model.engine import Engine
from model.evaluation import EvaluationRecord
from repository.namespaces import EVALUATION_INDEX, EVALUATIONS

KEY_PREFIX: Final[str] = EVALUATIONS


class EvaluationRepository:
    """
    Flow:
    - Each record is written once (SET) and indexed in a per (tenant, entity,
      engine) sorted set scored by created_at.
    - Records are never updated; "latest" is the highest score at read time,
      so overlapping dispatches can only add rows, never clobber one.
    """

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(record_id: str) -> str:
        return f"{KEY_PREFIX}:{record_id}"

    @staticmethod
    def _index(tenant_id: str, entity_id: str, engine: Engine) -> str:
        return f"{EVALUATION_INDEX}:{tenant_id}:{entity_id}:{engine.value}"

    async def add(self, record: EvaluationRecord) -> None:
        r = await self._client()
        payload = record.model_dump_json().encode("utf-8")
        async with r.pipeline(transaction=True) as pipe:
            pipe.set(self._key(record.id), payload)
            pipe.zadd(
                self._index(record.tenant_id, record.entity_id, record.engine),
                {record.id: record.created_at.timestamp()},
            )
            await pipe.execute()

    async def get(self, record_id: str) -> Optional[EvaluationRecord]:
        r = await self._client()
        raw = await r.get(self._key(record_id))
        return EvaluationRecord.model_validate_json(raw) if raw is not None else None

    async def latest(
        self, tenant_id: str, entity_id: str, engine: Engine
    ) -> Optional[EvaluationRecord]:
        r = await self._client()
        ids = await r.zrevrange(self._index(tenant_id, entity_id, engine), 0, 0)
        if not ids:
            return None
        rid = ids[0].decode("utf-8") if isinstance(ids[0], (bytes, bytearray)) else ids[0]
        return await self.get(rid)

    async def latest_by_engine(
        self, tenant_id: str, entity_id: str
    ) -> dict[Engine, EvaluationRecord]:
        out: dict[Engine, EvaluationRecord] = {}
        for engine in Engine:
            rec = await self.latest(tenant_id, entity_id, engine)
            if rec is not None:
                out[engine] = rec
        return out
