"""Integration of rewrite policies with the standard library logging tree."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

from .config import get_settings
from .constants import POLICY_NAME
from .interceptor import MaskedDataInterceptor, create_policy, get_default_interceptor
from .status import get_status_logger


PolicyFactory = Callable[..., MaskedDataInterceptor]


_POLICY_LOCK = threading.RLock()
_POLICY_FACTORIES: Dict[str, PolicyFactory] = {}


def register_rewrite_policy(name: str, factory: PolicyFactory) -> None:
    """Register a policy factory under a stable name."""

    with _POLICY_LOCK:
        _POLICY_FACTORIES[name] = factory


def get_rewrite_policy(name: str = POLICY_NAME, **kwargs: Any) -> MaskedDataInterceptor:
    """Build the policy registered under ``name``."""

    with _POLICY_LOCK:
        factory = _POLICY_FACTORIES.get(name)

    if factory is None:
        raise KeyError(f"No rewrite policy registered under {name!r}")

    return factory(**kwargs)


def available_policies() -> tuple[str, ...]:
    with _POLICY_LOCK:
        return tuple(sorted(_POLICY_FACTORIES))


register_rewrite_policy(POLICY_NAME, create_policy)


class RewriteHandler(logging.Handler):
    """Rewrites every record through a policy before handing it to the wrapped handlers."""

    def __init__(
        self,
        policy: MaskedDataInterceptor,
        handlers: Iterable[logging.Handler] = (),
        level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level)
        self.policy = policy
        self._targets: List[logging.Handler] = list(handlers)
        # Handlers taken off the logger this handler is installed on.
        self._owned: List[logging.Handler] = []
        self.restore_propagate: Optional[bool] = None

    @property
    def targets(self) -> tuple[logging.Handler, ...]:
        with self.lock:
            return tuple(self._targets)

    @property
    def owned(self) -> tuple[logging.Handler, ...]:
        with self.lock:
            return tuple(self._owned)

    def add_target(self, handler: logging.Handler) -> None:
        with self.lock:
            if handler not in self._targets:
                self._targets.append(handler)

    def adopt(self, handler: logging.Handler) -> None:
        """Wrap a handler that was attached to the masked logger itself."""

        with self.lock:
            if handler not in self._owned:
                self._owned.append(handler)
        self.add_target(handler)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            rewritten = self.policy.rewrite_record(record)
        except Exception:
            self.handleError(record)
            return

        for handler in self.targets:
            if rewritten.levelno < handler.level:
                continue
            try:
                handler.handle(rewritten)
            except Exception:
                self.handleError(rewritten)

    def flush(self) -> None:
        for handler in self.targets:
            handler.flush()


def _find_rewrite_handler(logger: logging.Logger) -> Optional[RewriteHandler]:
    for handler in logger.handlers:
        if isinstance(handler, RewriteHandler):
            return handler
    return None


def _inherited_handlers(logger: logging.Logger) -> List[logging.Handler]:
    """Handlers a propagating record from ``logger`` would reach above it."""

    found: List[logging.Handler] = []
    current = logger.parent if logger.propagate else None
    while current is not None:
        for handler in current.handlers:
            if isinstance(handler, RewriteHandler):
                found.extend(handler.targets)
            else:
                found.append(handler)
        if not current.propagate:
            break
        current = current.parent
    return found


def install_masking(
    logger: logging.Logger | str | None = None,
    policy: MaskedDataInterceptor | None = None,
) -> Optional[RewriteHandler]:
    """Route every handler a logger's records reach through a masking policy.

    The logger's own handlers are moved behind the masking handler. When the
    logger propagates, the handlers of its ancestors are wrapped as well and
    propagation is switched off so no ancestor sees an unmasked record.
    Handlers attached after this call are not wrapped; calling it again
    picks up the logger's own new handlers.
    """

    if not get_settings().enabled:
        return None

    target = logger if isinstance(logger, logging.Logger) else logging.getLogger(logger)
    existing = _find_rewrite_handler(target)
    plain = [h for h in target.handlers if not isinstance(h, RewriteHandler)]
    inherited = _inherited_handlers(target)

    if existing is None and not plain and not inherited:
        get_status_logger().warning(
            "Logger '%s' has no handlers; masking not installed", target.name
        )
        return None

    if existing is None:
        existing = RewriteHandler(policy or get_default_interceptor())
        target.addHandler(existing)

    for handler in plain:
        target.removeHandler(handler)
        existing.adopt(handler)

    if target.propagate:
        for handler in inherited:
            existing.add_target(handler)
        existing.restore_propagate = True
        target.propagate = False

    return existing


def uninstall_masking(logger: logging.Logger | str | None = None) -> None:
    """Remove the masking handler and restore the logger as it was."""

    target = logger if isinstance(logger, logging.Logger) else logging.getLogger(logger)
    existing = _find_rewrite_handler(target)
    if existing is None:
        return

    target.removeHandler(existing)
    for handler in existing.owned:
        target.addHandler(handler)
    if existing.restore_propagate is not None:
        target.propagate = existing.restore_propagate
