"""Provider configuration loaders for the WAHA WhatsApp API.

A loader returns a ``WahaSession`` or ``None`` when nothing is configured;
the gateway turns ``None`` into a ``ConfigurationError``.
"""

from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from escalafin.config import Settings, get_settings
from escalafin.domain.models.waha_config import WahaConfig


@dataclass(frozen=True)
class WahaSession:
    session_id: str
    base_url: str
    api_key: Optional[str] = None


class WahaConfigLoader(Protocol):
    def load(self) -> Optional[WahaSession]:
        ...


class DatabaseWahaConfigLoader:
    """Reads the active WahaConfig row, falling back to environment settings."""

    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    def load(self) -> Optional[WahaSession]:
        config = (
            self.db.query(WahaConfig)
            .filter(WahaConfig.is_active.is_(True))
            .order_by(WahaConfig.id.desc())
            .first()
        )
        if config:
            return WahaSession(
                session_id=config.session_id,
                base_url=config.base_url.rstrip("/"),
                api_key=config.api_key or None,
            )

        if self.settings.WAHA_BASE_URL:
            return WahaSession(
                session_id=self.settings.WAHA_SESSION,
                base_url=self.settings.WAHA_BASE_URL.rstrip("/"),
                api_key=self.settings.WAHA_API_KEY or None,
            )
        return None


class CachedWahaConfigLoader:
    """Memoizes the first configuration found; keeps asking while none exists."""

    def __init__(self, inner: WahaConfigLoader):
        self.inner = inner
        self._session: Optional[WahaSession] = None

    def load(self) -> Optional[WahaSession]:
        if self._session is None:
            self._session = self.inner.load()
        return self._session

    def invalidate(self) -> None:
        self._session = None


class StaticWahaConfigLoader:
    """Fixed configuration, or explicitly none."""

    def __init__(self, session: Optional[WahaSession]):
        self.session = session

    def load(self) -> Optional[WahaSession]:
        return self.session
