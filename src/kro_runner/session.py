"""Runner session handle threaded from Create into Wait and Delete."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .errors import MissingSessionError


def _utcnow():
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RunnerSession:
    """
    What later lifecycle phases need to know about a created instance.

    Create returns one. A process that restarted between phases can rebuild
    it with for_runner() as long as it still knows the runner name.
    """

    runner_name: str
    secret_name: Optional[str] = None
    namespace: Optional[str] = None
    scale_set_name: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def for_runner(cls, runner_name, secret_name=None, namespace=None, scale_set_name=None):
        return cls(
            runner_name=runner_name,
            secret_name=secret_name,
            namespace=namespace,
            scale_set_name=scale_set_name,
        )

    def metadata(self):
        """Annotation payload stored on the instance."""
        return {
            "runnerName": self.runner_name,
            "scaleSetName": self.scale_set_name,
            # ARC creates the JIT secret under the runner name
            "jitConfigSecret": self.runner_name,
            "createdTimestamp": self.created_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
        }


def require_session(session, operation):
    """Return session or raise MissingSessionError for an unusable one."""
    if session is None:
        raise MissingSessionError(f"{operation} requires a session from create_resources")
    if not session.runner_name:
        raise MissingSessionError(f"{operation} requires a session with a runner name")
    return session
