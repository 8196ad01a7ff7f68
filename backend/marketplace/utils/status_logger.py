import logging
from sqlalchemy import event
from sqlalchemy.orm.attributes import NO_VALUE

from .. import models

logger = logging.getLogger(__name__)

_registered = False


def log_status_change(model_name: str, entity_id, old_status, new_status) -> None:
    """Emit the one log line every status transition produces."""
    logger.info(
        "%s id=%s status changed from %s to %s",
        model_name,
        entity_id,
        getattr(old_status, "value", old_status),
        getattr(new_status, "value", new_status),
    )


def _listener_factory(model_name: str):
    """Return a SQLAlchemy attribute listener that logs status changes."""

    def _status_change(target, value, oldvalue, initiator):  # noqa: ANN001
        if oldvalue is NO_VALUE or oldvalue is None or oldvalue == value:
            return value
        entity_id = getattr(target, "id", None) or getattr(target, "user_id", "unknown")
        log_status_change(model_name, entity_id, oldvalue, value)
        return value

    return _status_change


def register_status_listeners() -> None:
    """Attach listeners for all models with a ``status`` attribute.

    Bulk ``Query.update()`` writes bypass attribute events. Guarded booking
    transitions log through ``log_status_change``; bulk technician updates log
    one summary line in the service.
    """
    global _registered
    if _registered:
        return
    for model in (models.Booking, models.Payment, models.TechnicianProfile):
        event.listen(
            model.status,  # type: ignore[arg-type]
            "set",
            _listener_factory(model.__name__),
            retval=False,
            propagate=True,
        )
    _registered = True
