"""Map an InboundEvent onto the CloudEvents envelope sent downstream."""
from pydantic import ValidationError

from ..errors import EnvelopeConstraintViolation
from ..event_models import InboundEvent, OutboundEnvelope, JSON_CONTENT_TYPE


def build_envelope(event: InboundEvent) -> OutboundEnvelope:
    """
    Build the outbound envelope for an event.

    The payload is always tagged ``application/json``, whatever it contains.

    Raises:
        EnvelopeConstraintViolation: id, source or type is empty, or the
            specversion is not one CloudEvents defines.
    """
    try:
        return OutboundEnvelope(
            id=event.id,
            source=event.source,
            specversion=event.specversion,
            type=event.type,
            time=event.time,
            datacontenttype=JSON_CONTENT_TYPE,
            payload=event.payload,
        )
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise EnvelopeConstraintViolation(problems) from e
