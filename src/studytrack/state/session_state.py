from dataclasses import dataclass, field
import logging
from typing import Callable, List, Optional

from studytrack.services.auth_service import AuthResult


logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[str]], None]


@dataclass
class SessionState:
    uid: Optional[str] = None
    email: Optional[str] = None
    session_secret: Optional[str] = None
    session_id: Optional[str] = None
    _listeners: List[IdentityListener] = field(default_factory=list, repr=False)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.uid and self.session_secret)

    def subscribe(self, listener: IdentityListener) -> None:
        self._listeners.append(listener)

    def sign_in(self, result: AuthResult) -> None:
        previous = self.uid
        self.uid = result.uid
        self.email = result.email
        self.session_secret = result.session_secret
        self.session_id = result.session_id
        if previous != self.uid:
            self._notify()

    def clear(self) -> None:
        had_identity = self.uid is not None
        self.uid = None
        self.email = None
        self.session_secret = None
        self.session_id = None
        if had_identity:
            self._notify()

    def _notify(self) -> None:
        logger.info("Identity changed to %s", self.uid or "<signed out>")
        for listener in list(self._listeners):
            listener(self.uid)
