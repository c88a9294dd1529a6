# repository/namespaces.py
from typing import Final

ROOT: Final[str] = "truthaudit"

ENTITIES: Final[str] = f"{ROOT}:entities"
EVALUATIONS: Final[str] = f"{ROOT}:evaluations"
EVALUATION_INDEX: Final[str] = f"{EVALUATIONS}:idx"  # zset per (tenant, entity, engine)
HALLUCINATIONS: Final[str] = f"{ROOT}:hallucinations"
HALLUCINATION_INDEX: Final[str] = f"{HALLUCINATIONS}:idx"  # zset per (tenant, entity)
