"""
AWS resource functions for Terraform synthesis, grouped by service category.

Each function validates its attributes, declares one ``resource`` block on the
synthesizer and returns a ``ResourceReference``. Importing this package
registers every function with ``modules.registry.registry``.
"""

from typing import Any, Iterable, Mapping, Optional

from modules.computed import computed_attributes_for
from modules.reference import ResourceReference, build_outputs


def make_reference(
    synth,
    resource_type: str,
    name: str,
    attrs,
    outputs: Iterable[str],
    paths: Optional[Mapping[str, str]] = None,
    computed: Optional[Mapping[str, Any]] = None,
) -> ResourceReference:
    """Build and register the reference returned by a resource function.

    Types with a view in ``modules.computed`` get the view's values merged
    into ``computed``; explicitly passed values win.
    """
    resource_attributes = attrs.to_dict()
    output_map = build_outputs(resource_type, name, outputs, paths)
    reference = ResourceReference(
        resource_type, name, resource_attributes, output_map, computed
    )
    view = computed_attributes_for(reference)
    if view is not None:
        reference = ResourceReference(
            resource_type,
            name,
            resource_attributes,
            output_map,
            {**view.to_dict(), **(computed or {})},
        )
    return synth.register_reference(reference)


from . import (  # noqa: E402,F401
    analytics,
    compute,
    containers,
    database,
    integration,
    management,
    network,
    security,
    storage,
)
