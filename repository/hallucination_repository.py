# repository/hallucination_repository.py
from datetime import datetime
from enum import Enum
from typing import Final, Iterable, Optional
from redis.asyncio import Redis
from config.cache import get_redis
from model.hallucination import CorrectionStatus, HallucinationRecord
from repository.namespaces import HALLUCINATION_INDEX, HALLUCINATIONS

KEY_PREFIX: Final[str] = HALLUCINATIONS

_TIMESTAMPS: Final[tuple[str, ...]] = (
    "detected_at",
    "last_seen_at",
    "verifying_since",
    "resolved_at",
)

# Check-then-set in one round trip. Returns -1 when the record is missing or
# owned by another tenant, 0 when the status is not one of the expected ones,
# 1 when the new fields were written.
_TRANSITION_LUA: Final[str] = """
local cur = redis.call('HMGET', KEYS[1], 'tenant_id', 'correction_status')
if not cur[1] or cur[1] ~= ARGV[1] then
  return -1
end
local allowed = false
for s in string.gmatch(ARGV[2], '[^,]+') do
  if s == cur[2] then allowed = true end
end
if not allowed then
  return 0
end
redis.call('HSET', KEYS[1], unpack(ARGV, 3))
return 1
"""


class TransitionResult(str, Enum):
    applied = "applied"
    conflict = "conflict"
    missing = "missing"


_RESULT_BY_CODE: Final[dict[int, TransitionResult]] = {
    1: TransitionResult.applied,
    0: TransitionResult.conflict,
    -1: TransitionResult.missing,
}


def _encode(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class HallucinationRecordRepository:
    """
    Flow:
    - One Redis hash per record (never deleted; dismissal is a status).
    - Per (tenant, entity) sorted set indexes records by detected_at.
    - Every status write goes through transition(), a Lua compare-and-set, so
      two concurrent "begin verification" calls cannot both see `open`.
    """

    def __init__(self) -> None:
        self._script = None

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(record_id: str) -> str:
        return f"{KEY_PREFIX}:{record_id}"

    @staticmethod
    def _index(tenant_id: str, entity_id: str) -> str:
        return f"{HALLUCINATION_INDEX}:{tenant_id}:{entity_id}"

    @staticmethod
    def _from_hash(h: dict) -> Optional[HallucinationRecord]:
        def _s(key: str) -> Optional[str]:
            v = h.get(key.encode("utf-8"), h.get(key))
            if v is None:
                return None
            v = v.decode("utf-8") if isinstance(v, (bytes, bytearray)) else str(v)
            return v or None

        fields = {
            k: _s(k)
            for k in (
                "id",
                "tenant_id",
                "entity_id",
                "engine",
                "claim_text",
                "expected_truth",
                "severity",
                "category",
                "correction_status",
                *_TIMESTAMPS,
            )
        }
        return HallucinationRecord.model_validate(
            {k: v for k, v in fields.items() if v is not None}
        )

    # ---------------- Core CRUD ----------------

    async def create(self, record: HallucinationRecord) -> None:
        r = await self._client()
        mapping = {k: _encode(v) for k, v in record.model_dump().items()}
        async with r.pipeline(transaction=True) as pipe:
            pipe.hset(self._key(record.id), mapping=mapping)
            pipe.zadd(
                self._index(record.tenant_id, record.entity_id),
                {record.id: record.detected_at.timestamp()},
            )
            await pipe.execute()

    async def get(self, tenant_id: str, record_id: str) -> Optional[HallucinationRecord]:
        if not tenant_id or not record_id:
            return None
        r = await self._client()
        h = await r.hgetall(self._key(record_id))
        if not h:
            return None
        record = self._from_hash(h)
        if record is None or record.tenant_id != tenant_id:
            return None
        return record

    async def list_for_entity(
        self,
        tenant_id: str,
        entity_id: str,
        statuses: Iterable[CorrectionStatus] | None = None,
    ) -> list[HallucinationRecord]:
        """Newest first; optionally restricted to `statuses`."""
        r = await self._client()
        ids = await r.zrevrange(self._index(tenant_id, entity_id), 0, -1)
        wanted = set(statuses) if statuses is not None else None
        out: list[HallucinationRecord] = []
        for raw in ids or []:
            rid = raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw
            rec = await self.get(tenant_id, rid)
            if rec is None:
                continue
            if wanted is None or rec.correction_status in wanted:
                out.append(rec)
        return out

    async def has_fixed(self, tenant_id: str, entity_id: str) -> bool:
        fixed = await self.list_for_entity(
            tenant_id, entity_id, statuses=[CorrectionStatus.fixed]
        )
        return bool(fixed)

    # ---------------- Status writes ----------------

    async def transition(
        self,
        tenant_id: str,
        record_id: str,
        *,
        expected: Iterable[CorrectionStatus],
        target: CorrectionStatus,
        **stamps: datetime | None,
    ) -> TransitionResult:
        """
        Atomically move the record to `target` iff its current status is one of
        `expected`. `stamps` are timestamp fields written alongside (None clears).
        """
        r = await self._client()
        if self._script is None:
            self._script = r.register_script(_TRANSITION_LUA)
        args: list[str] = [
            tenant_id,
            ",".join(s.value for s in expected),
            "correction_status",
            target.value,
        ]
        for name, value in stamps.items():
            if name not in _TIMESTAMPS:
                raise ValueError(f"unknown timestamp field {name}")
            args.extend([name, _encode(value)])
        code = await self._script(keys=[self._key(record_id)], args=args)
        return _RESULT_BY_CODE[int(code)]
