import math
from typing import Dict, Iterable, List, Optional, Sequence

from onboarding.core.models.course import Module
from onboarding.core.models.progress import ModuleProgress, UnlockState


class ModuleSequencer:
    """
    Linear gating over a course's ordered module list.

    A module is reachable only when the module right before it is completed.
    Completed modules stay reachable no matter what happens around them.
    """

    @staticmethod
    def completed_ids(records: Iterable[ModuleProgress]) -> set:
        return {r.module_id for r in records if r.completed}

    @staticmethod
    def compute_unlock_state(
        modules: Sequence[Module],
        records: Iterable[ModuleProgress],
    ) -> Dict[str, UnlockState]:
        done = ModuleSequencer.completed_ids(records)
        states: Dict[str, UnlockState] = {}
        for index, module in enumerate(modules):
            if module.id in done:
                states[module.id] = UnlockState.COMPLETED
            elif index == 0 or modules[index - 1].id in done:
                states[module.id] = UnlockState.UNLOCKED
            else:
                states[module.id] = UnlockState.LOCKED
        return states

    @staticmethod
    def compute_course_percentage(
        modules: Sequence[Module],
        records: Iterable[ModuleProgress],
    ) -> int:
        """
        `records` must already include the completion being processed.
        Records for modules no longer in the course are ignored.
        """
        if not modules:
            return 0
        done = ModuleSequencer.completed_ids(records)
        completed_count = sum(1 for m in modules if m.id in done)
        # Half-up rounding: 33.33 -> 33, 66.67 -> 67, 12.5 -> 13
        return int(math.floor(100 * completed_count / len(modules) + 0.5))

    @staticmethod
    def next_module_id(modules: Sequence[Module], records: Iterable[ModuleProgress]) -> Optional[str]:
        """First unlocked module that still has to be completed."""
        states = ModuleSequencer.compute_unlock_state(modules, records)
        return next((m.id for m in modules if states[m.id] == UnlockState.UNLOCKED), None)

    @staticmethod
    def with_record(records: List[ModuleProgress], updated: ModuleProgress) -> List[ModuleProgress]:
        """Records as they will look after `updated` has been stored."""
        others = [r for r in records if r.module_id != updated.module_id]
        return others + [updated]
