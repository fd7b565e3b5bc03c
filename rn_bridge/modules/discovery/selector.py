"""
Instance Selector

Picks the primary instance among those one bundler endpoint lists.
"""

from typing import Optional, Sequence

from rn_bridge.models import InstanceDescriptor

BRIDGELESS_MARKER = "Bridgeless"
HERMES_MARKER = "Hermes"
# Titles of runtimes that are not the app's main JS context
EXCLUDED_TITLE_MARKERS = ("Experimental", "Reanimated")


def _mentions(descriptor: InstanceDescriptor, marker: str) -> bool:
    return any(marker in field for field in (descriptor.title, descriptor.description, descriptor.type))


def select_main_instance(descriptors: Sequence[InstanceDescriptor],
                         excluded_markers: Sequence[str] = EXCLUDED_TITLE_MARKERS) -> Optional[InstanceDescriptor]:
    """
    First match, in priority order:
      1. a bridgeless runtime
      2. a Hermes runtime
      3. any instance whose title names no excluded runtime

    List order breaks ties. Returns None when nothing qualifies.
    """
    for descriptor in descriptors:
        if _mentions(descriptor, BRIDGELESS_MARKER):
            return descriptor

    for descriptor in descriptors:
        if _mentions(descriptor, HERMES_MARKER):
            return descriptor

    for descriptor in descriptors:
        if not any(marker in descriptor.title for marker in excluded_markers):
            return descriptor

    return None
