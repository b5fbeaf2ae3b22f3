"""
State Management for schedule projections.
Persists {lastBlock, activeSchedules, removedSchedules} as one JSON file per
(schedule kind, network) pair.
"""

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Optional, Type

from pydantic import ValidationError

from ..exceptions import ConsistencyError, StateFileError
from .schedules import ScheduleBase, SchedulerState

logger = logging.getLogger(__name__)


class StateStore:
    """
    Loads and atomically saves the persisted projection.

    A missing file is a first run and yields the bootstrap state; anything
    unreadable is an error.
    """

    def __init__(self, path: Path, schedule_model: Type[ScheduleBase], bootstrap_block: int):
        self.path = Path(path)
        self.schedule_model = schedule_model
        self.bootstrap_block = bootstrap_block
        self.state_type = SchedulerState[schedule_model]
        self._last_saved: Optional[int] = None

    def bootstrap(self) -> SchedulerState:
        """Empty state whose next block to process is the bootstrap block."""
        return self.state_type(lastBlock=self.bootstrap_block - 1)

    def load(self) -> SchedulerState:
        """
        Load state from the state file.

        Returns:
            Persisted state, or the bootstrap state if no file exists

        Raises:
            StateFileError: If the file exists but is corrupt or partial
        """
        if not self.path.exists():
            logger.info(f"State file not found at {self.path}, starting at block {self.bootstrap_block}")
            state = self.bootstrap()
            self._last_saved = state.lastBlock
            return state

        try:
            with open(self.path, "r") as f:
                raw = json.load(f)
            state = self.state_type.model_validate(raw)
        except json.JSONDecodeError as e:
            raise StateFileError(f"Failed to parse state file {self.path}: {e}") from e
        except ValidationError as e:
            raise StateFileError(f"State file {self.path} does not match the schedule layout: {e}") from e
        except OSError as e:
            raise StateFileError(f"Failed to read state file {self.path}: {e}") from e

        logger.info(
            f"Loaded state from {self.path}: lastBlock {state.lastBlock}, "
            f"{len(state.activeSchedules)} active, {len(state.removedSchedules)} removed"
        )
        self._last_saved = state.lastBlock
        return state

    def save(self, state: SchedulerState) -> None:
        """
        Save state atomically: write a temp file, keep a backup of the
        previous file, then rename over it.

        Raises:
            ConsistencyError: If the checkpoint would move backwards
        """
        if self._last_saved is not None and state.lastBlock < self._last_saved:
            raise ConsistencyError(
                f"refusing to move checkpoint backwards from {self._last_saved} to {state.lastBlock}"
            )

        self.path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = self.path.with_suffix(".json.tmp")
        with open(temp_path, "w") as f:
            json.dump(state.model_dump(mode="json"), f, indent=2)
            f.flush()
            os.fsync(f.fileno())

        # Create backup if file exists
        if self.path.exists():
            backup_path = self.path.with_suffix(".json.backup")
            shutil.copyfile(self.path, backup_path)
            logger.debug(f"Created backup at {backup_path}")

        os.replace(temp_path, self.path)
        self._last_saved = state.lastBlock
        logger.info(f"Saved state to {self.path} at block {state.lastBlock}")
