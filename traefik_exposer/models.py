"""
Container Metadata Models

Immutable records produced by the runtime adapter: one ``ContainerSnapshot``
per exposable container and one ``ContainerEvent`` per lifecycle event.
"""

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping

from .errors import EventStreamError


def _freeze(labels: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(labels))


@dataclass(frozen=True)
class ContainerSnapshot:
    """A running container as seen at the last cache refresh"""

    name: str
    address: str
    labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # Frozen dataclass: bypass __setattr__ to store a read-only copy
        object.__setattr__(self, 'labels', _freeze(self.labels))

    @classmethod
    def from_labels(cls, name: str, address: str, labels: Mapping[str, str], label_prefix: str) -> 'ContainerSnapshot':
        """Build a snapshot keeping only labels under ``label_prefix``"""
        filtered = {key: value for key, value in labels.items() if key.startswith(label_prefix)}
        return cls(name=name or '', address=address or '', labels=filtered)

    def label(self, label_prefix: str, suffix: str):
        return self.labels.get(f"{label_prefix}{suffix}")

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'address': self.address, 'labels': dict(self.labels)}


@dataclass(frozen=True)
class ContainerEvent:
    """A container lifecycle event reported by the runtime"""

    kind: str
    container_id: str = ''
    container_name: str = ''
    event_type: str = 'container'

    @classmethod
    def from_payload(cls, payload: bytes) -> 'ContainerEvent':
        """Decode one JSON event line as emitted by ``GET /events``.

        Raises EventStreamError when the payload is not a JSON object,
        carries no action or has fields of the wrong type.
        """
        try:
            data = json.loads(payload)
        except ValueError as e:
            raise EventStreamError(f"Malformed event payload: {e}", payload) from e

        if not isinstance(data, dict):
            raise EventStreamError("Event payload is not a JSON object", payload)

        # Older daemons only send 'status'; newer ones send 'Action' as well
        kind = data.get('Action') or data.get('status')
        if not kind:
            raise EventStreamError("Event payload has no action", payload)

        actor = data.get('Actor') or {}
        if not isinstance(actor, dict):
            raise EventStreamError("Event payload has a malformed 'Actor'", payload)
        attributes = actor.get('Attributes') or {}
        if not isinstance(attributes, dict):
            raise EventStreamError("Event payload has malformed actor attributes", payload)

        fields = {
            'kind': kind,
            'container_id': actor.get('ID') or data.get('id') or '',
            'container_name': attributes.get('name') or '',
            'event_type': data.get('Type') or 'container',
        }
        for name, value in fields.items():
            if not isinstance(value, str):
                raise EventStreamError(f"Event payload field '{name}' is not a string", payload)

        return cls(**fields)
