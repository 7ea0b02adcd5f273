import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Optional, Set

from cbt.core.cache import AutosaveStorage, autosave_storage
from cbt.schemas.user_answer import UserAnswer, AnswerValue
from cbt.utils.time import utcnow, ensure_aware

logger = logging.getLogger(__name__)


class AnswerStore:
    """
    Per-attempt answer ledger with durable autosave.

    The in-memory ledger is authoritative. Every write schedules a background
    flush of the whole ledger; flushes run one at a time and only ever persist
    a snapshot newer than the last persisted one, so a slow early flush can
    never overwrite a later write. Failed flushes leave the ledger dirty and
    are retried by the next write.
    """

    def __init__(
        self,
        key: str,
        storage: AutosaveStorage = autosave_storage,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.key = key
        self.storage = storage
        self.clock = clock
        self._answers: Dict[str, UserAnswer] = {}
        self._revision = 0
        self._persisted_revision = 0
        self._frozen = False
        self._flush_lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def dirty(self) -> bool:
        return self._revision > self._persisted_revision

    def write(self, question_id: str, value: AnswerValue) -> Optional[UserAnswer]:
        if self._frozen:
            logger.warning(f"[{self.key}] Write to question {question_id} ignored: attempt already finalized")
            return None

        existing = self._answers.get(question_id)
        now = self.clock()
        if existing:
            answer = existing.model_copy(update={"answer": value, "last_saved": now})
        else:
            answer = UserAnswer(question_id=question_id, answer=value, last_saved=now)

        self._answers[question_id] = answer
        self._revision += 1
        self._schedule_flush()
        return answer

    def read(self, question_id: str) -> Optional[UserAnswer]:
        return self._answers.get(question_id)

    def snapshot(self) -> Dict[str, UserAnswer]:
        return {qid: answer.model_copy(deep=True) for qid, answer in self._answers.items()}

    def answered_ids(self) -> Set[str]:
        return set(self._answers)

    def freeze(self, deadline: Optional[datetime] = None) -> Dict[str, UserAnswer]:
        """Stop accepting writes and return the ledger as saved before the deadline."""
        self._frozen = True
        ledger = self.snapshot()
        if deadline is None:
            return ledger

        deadline = ensure_aware(deadline)
        late = [qid for qid, answer in ledger.items() if ensure_aware(answer.last_saved) > deadline]
        for qid in late:
            logger.info(f"[{self.key}] Answer to question {qid} saved after the deadline; excluded")
            del ledger[qid]
        return ledger

    def _schedule_flush(self):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: stays dirty until the next explicit flush.
            return
        task = loop.create_task(self.flush())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def flush(self) -> bool:
        async with self._flush_lock:
            if not self.dirty:
                return True

            revision = self._revision
            payload = {
                "revision": revision,
                "answers": {qid: a.model_dump(mode="json") for qid, a in self._answers.items()},
            }
            try:
                saved = await self.storage.save(self.key, payload)
            except Exception as e:
                logger.warning(f"[{self.key}] Autosave failed at revision {revision}: {e}")
                return False

            if not saved:
                logger.warning(f"[{self.key}] Autosave rejected by storage at revision {revision}")
                return False

            self._persisted_revision = max(self._persisted_revision, revision)
            logger.debug(f"[{self.key}] Autosaved revision {revision}")
            return True

    async def drain(self):
        """Wait for background flushes scheduled so far."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def restore(self) -> int:
        """Load the last durable ledger for this attempt. Returns the number of answers restored."""
        try:
            payload = await self.storage.load(self.key)
        except Exception as e:
            logger.warning(f"[{self.key}] Autosave restore failed: {e}")
            return 0

        if not payload or not isinstance(payload, dict):
            return 0

        restored: Dict[str, UserAnswer] = {}
        for qid, raw in (payload.get("answers") or {}).items():
            try:
                restored[qid] = UserAnswer.model_validate(raw)
            except ValueError as e:
                logger.warning(f"[{self.key}] Skipping unreadable autosaved answer {qid}: {e}")

        # In-memory writes made before the restore completed are newer
        had_local_writes = self._revision > 0
        for qid, answer in restored.items():
            current = self._answers.get(qid)
            if current is None or ensure_aware(current.last_saved) < ensure_aware(answer.last_saved):
                self._answers[qid] = answer

        revision = int(payload.get("revision") or 0)
        self._persisted_revision = max(self._persisted_revision, revision)
        self._revision = max(self._revision, revision) + (1 if had_local_writes else 0)
        logger.info(f"[{self.key}] Restored {len(restored)} autosaved answers")
        return len(restored)

    async def discard(self):
        await self.drain()
        try:
            await self.storage.discard(self.key)
        except Exception as e:
            logger.warning(f"[{self.key}] Could not discard autosave: {e}")
