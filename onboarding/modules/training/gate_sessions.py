import json
import logging
from typing import Optional, Union

import redis

from onboarding.core.exceptions import PersistenceError
from onboarding.core.models.course import Module, QuizModule, ReadingModule, VideoModule
from onboarding.core.setting import config
from onboarding.modules.training.reading_gate import ReadingGate
from onboarding.modules.training.video_gate import VideoGate

logger = logging.getLogger(__name__)

Gate = Union[VideoGate, ReadingGate]


class GateSessionCache:
    """
    Keeps the in-flight gate of a viewing session between HTTP polls.

    Nothing here is durable: an expired or evicted entry simply means the
    learner starts a fresh session, exactly like closing the tab.
    """

    def __init__(self, client: redis.Redis, ttl_seconds: Optional[int] = None):
        self.client = client
        self.ttl_seconds = ttl_seconds or config.GATE_SESSION_TTL_SECONDS

    @staticmethod
    def _get_cache_key(assignment_id: str, module_id: str) -> str:
        return f"gate_session:{assignment_id}:{module_id}"

    @staticmethod
    def new_video_gate() -> VideoGate:
        return VideoGate(
            seek_tolerance_seconds=config.VIDEO_SEEK_TOLERANCE_SECONDS,
            completion_ratio=config.VIDEO_COMPLETION_RATIO,
        )

    @staticmethod
    def new_reading_gate() -> ReadingGate:
        return ReadingGate(completion_percent=config.READING_COMPLETION_PERCENT)

    @classmethod
    def new_gate(cls, module: Module) -> Optional[Gate]:
        """Fresh gate for a module, configured from settings. Quizzes have none."""
        if isinstance(module, VideoModule):
            return cls.new_video_gate()
        if isinstance(module, ReadingModule):
            return cls.new_reading_gate()
        if isinstance(module, QuizModule):
            return None
        raise TypeError(f"Unhandled module type {type(module).__name__}")

    def start(self, assignment_id: str, module: Module) -> Optional[Gate]:
        """Begin a new viewing session, dropping whatever the previous one held."""
        gate = self.new_gate(module)
        if gate is None:
            self.discard(assignment_id, module.id)
        else:
            self.save(assignment_id, module.id, gate)
        return gate

    def load_video(self, assignment_id: str, module_id: str) -> VideoGate:
        raw = self._read(assignment_id, module_id)
        if raw is None:
            return self.new_video_gate()
        return VideoGate.model_validate(json.loads(raw))

    def load_reading(self, assignment_id: str, module_id: str) -> ReadingGate:
        raw = self._read(assignment_id, module_id)
        if raw is None:
            return self.new_reading_gate()
        return ReadingGate.model_validate(json.loads(raw))

    def _read(self, assignment_id: str, module_id: str) -> Optional[str]:
        key = self._get_cache_key(assignment_id, module_id)
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            logger.error(f"Failed to read gate session {key}: {e}")
            raise PersistenceError("Viewing session unavailable, please retry") from e
        return raw

    def save(self, assignment_id: str, module_id: str, gate: Gate) -> None:
        key = self._get_cache_key(assignment_id, module_id)
        try:
            self.client.setex(key, self.ttl_seconds, gate.model_dump_json())
        except redis.RedisError as e:
            logger.error(f"Failed to store gate session {key}: {e}")
            raise PersistenceError("Viewing session unavailable, please retry") from e

    def discard(self, assignment_id: str, module_id: str) -> None:
        key = self._get_cache_key(assignment_id, module_id)
        try:
            self.client.delete(key)
        except redis.RedisError as e:
            logger.error(f"Failed to drop gate session {key}: {e}")
            raise PersistenceError("Viewing session unavailable, please retry") from e
