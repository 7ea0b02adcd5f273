from typing import List

from cbt.crud.base import CRUDBase
from cbt.schemas.audit_log import AuditLog

class CRUDAuditLog(CRUDBase[AuditLog, AuditLog]):
    id_prefix = "log-"

    def get_recent(self, *, limit: int = 100) -> List[AuditLog]:
        # Newest first; entries with equal timestamps keep reverse insertion order
        newest_inserted_first = list(self._records.values())[::-1]
        logs = sorted(newest_inserted_first, key=lambda log: log.timestamp, reverse=True)
        return logs[:limit]


audit_log = CRUDAuditLog(AuditLog)
