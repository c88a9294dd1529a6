# repository/entity_repository.py
from typing import Optional
from redis.asyncio import Redis
from config.cache import get_redis
from model.entity import GroundTruthEntity
from repository.namespaces import ENTITIES


class EntityRepository:
    """
    Ground-truth entities keyed by (tenant, entity). A lookup under the wrong
    tenant is indistinguishable from a missing entity.
    """

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(tenant_id: str, entity_id: str) -> str:
        return f"{ENTITIES}:{tenant_id}:{entity_id}"

    async def get(self, tenant_id: str, entity_id: str) -> Optional[GroundTruthEntity]:
        if not tenant_id or not entity_id:
            return None
        r = await self._client()
        raw = await r.get(self._key(tenant_id, entity_id))
        if raw is None:
            return None
        return GroundTruthEntity.model_validate_json(raw)

    async def put(self, entity: GroundTruthEntity) -> None:
        r = await self._client()
        payload = entity.model_dump_json(exclude_none=True).encode("utf-8")
        await r.set(self._key(entity.tenant_id, entity.id), payload)
