"""
Management of the database-side notification fan-out trigger.

The trigger only exists on PostgreSQL. On other backends every query method
reports "not installed / not active" and the mutating methods raise.
"""

import logging
from typing import Dict, Any, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from tradingroom.db import triggers
from tradingroom.db.database import is_postgres

logger = logging.getLogger("tradingroom.notifications.trigger")


class NotificationTriggerService:

    def __init__(self, db: Session):
        self.db = db

    def is_supported(self) -> bool:
        return is_postgres(self.db.get_bind())

    def _require_support(self) -> None:
        if not self.is_supported():
            raise RuntimeError("The notification trigger requires PostgreSQL")

    def _state(self) -> Optional[str]:
        if not self.is_supported():
            return None
        row = self.db.execute(text(triggers.TRIGGER_STATE_SQL)).first()
        if row is None:
            return None
        state = row[0]
        # psycopg2 may hand back the "char" column as bytes
        if isinstance(state, bytes):
            state = state.decode()
        return state

    def is_installed(self) -> bool:
        return self._state() is not None

    def is_active(self) -> bool:
        """True when the trigger exists and fires for ordinary sessions."""
        return self._state() in ("O", "A")

    def function_exists(self) -> bool:
        if not self.is_supported():
            return False
        return self.db.execute(text(triggers.FUNCTION_EXISTS_SQL)).first() is not None

    def status(self) -> Dict[str, Any]:
        return {
            "supported": self.is_supported(),
            "function_installed": self.function_exists(),
            "trigger_installed": self.is_installed(),
            "active": self.is_active(),
            "trigger_name": triggers.TRIGGER_NAME,
        }

    def install(self, enabled: bool = False) -> None:
        """(Re)create the function and trigger; left disabled unless ``enabled``."""
        self._require_support()
        self.db.execute(text(triggers.CREATE_FUNCTION_SQL))
        self.db.execute(text(triggers.DROP_TRIGGER_SQL))
        self.db.execute(text(triggers.CREATE_TRIGGER_SQL))
        if not enabled:
            self.db.execute(text(triggers.DISABLE_TRIGGER_SQL))
        self.db.commit()
        logger.info("Installed notification trigger (enabled=%s)", enabled)

    def remove(self) -> None:
        self._require_support()
        self.db.execute(text(triggers.DROP_TRIGGER_SQL))
        self.db.execute(text(triggers.DROP_FUNCTION_SQL))
        self.db.commit()
        logger.info("Removed notification trigger")

    def enable(self) -> None:
        self._require_support()
        if not self.is_installed():
            raise RuntimeError("Notification trigger is not installed")
        self.db.execute(text(triggers.ENABLE_TRIGGER_SQL))
        self.db.commit()
        logger.info("Enabled notification trigger; application fan-out is now bypassed")

    def disable(self) -> None:
        self._require_support()
        if not self.is_installed():
            raise RuntimeError("Notification trigger is not installed")
        self.db.execute(text(triggers.DISABLE_TRIGGER_SQL))
        self.db.commit()
        logger.info("Disabled notification trigger; application fan-out resumes")
