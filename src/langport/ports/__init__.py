"""
Port registry.

Ports are tried in DEFAULT_PORTS order and the first one whose portable()
accepts a field owns it. Ports whose fieldtype capability is not installed
are left out of a run entirely.
"""

from typing import List, Optional, Sequence, Type

from ..diagnostics import Diagnostics
from ..links import LinkLocalizer
from ..models import Field, PortContext
from ..store import ContentStore
from .attachment import AttachmentDescriptionPort
from .base import Port
from .containers import ContainerPort, FieldsetPort, PageTablePort, RepeaterPort
from .scalar import ScalarPort
from .table import DelimitedTablePort
from .textareas import DelimitedPropertiesPort

DEFAULT_PORTS: Sequence[Type[Port]] = (
    ScalarPort,
    DelimitedTablePort,
    DelimitedPropertiesPort,
    AttachmentDescriptionPort,
    FieldsetPort,
    RepeaterPort,
    PageTablePort,
)


def build_ports(
    store: ContentStore,
    context: PortContext,
    diagnostics: Optional[Diagnostics] = None,
    links: Optional[LinkLocalizer] = None,
    port_classes: Sequence[Type[Port]] = DEFAULT_PORTS,
) -> List[Port]:
    """Instantiate the usable ports for one run, in registration order."""
    ports = []
    for port_class in port_classes:
        port = port_class(store, context, diagnostics=diagnostics, links=links)
        if port.usable():
            ports.append(port)
    return ports


def find_port(ports: Sequence[Port], field: Field) -> Optional[Port]:
    """First port that accepts the field, or None."""
    for port in ports:
        if port.portable(field):
            return port
    return None


__all__ = [
    "DEFAULT_PORTS",
    "AttachmentDescriptionPort",
    "ContainerPort",
    "DelimitedPropertiesPort",
    "DelimitedTablePort",
    "FieldsetPort",
    "PageTablePort",
    "Port",
    "RepeaterPort",
    "ScalarPort",
    "build_ports",
    "find_port",
]
