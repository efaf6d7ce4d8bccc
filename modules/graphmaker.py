"""Graph maker module for Pangea.

This module builds the resource dependency graph from a synthesized Terraform
JSON tree. Edges come from the ``${type.name.attr}`` interpolations found in
each block body, so a resource points at every resource it references.
"""

from typing import Any, Dict, Generator, List, Optional

from modules.utils.string_utils import find_references


def dict_generator(
    indict: Any, pre: Optional[List[Any]] = None
) -> Generator[List[Any], None, None]:
    """Recursively traverse a block body and yield all paths to leaf values.

    Args:
        indict: Dictionary or value to traverse
        pre: Accumulated path prefix (used in recursion)

    Yields:
        List representing path to each leaf value
    """
    pre = pre[:] if pre else []
    if isinstance(indict, dict):
        for key, value in indict.items():
            if isinstance(value, dict):
                for d in dict_generator(value, pre + [key]):
                    yield d
            elif isinstance(value, (list, tuple)):
                for v in value:
                    for d in dict_generator(v, pre + [key]):
                        yield d
            else:
                yield pre + [key, value]
    else:
        yield pre + [indict]


def block_references(body: Dict[str, Any]) -> List[str]:
    """Return the sorted addresses referenced anywhere inside a block body."""
    found = set()
    for path in dict_generator(body):
        leaf = path[-1]
        if isinstance(leaf, str):
            for address, _ in find_references(leaf):
                found.add(address)
    return sorted(found)


def _blocks(synthesis: Dict[str, Any]) -> Generator:
    for resource_type, by_name in synthesis.get("resource", {}).items():
        for name, body in by_name.items():
            yield f"{resource_type}.{name}", body
    for data_type, by_name in synthesis.get("data", {}).items():
        for name, body in by_name.items():
            yield f"data.{data_type}.{name}", body


def make_graph(synthesis: Dict[str, Any]) -> Dict[str, List[str]]:
    """Build the dependency graph of a synthesized configuration.

    Args:
        synthesis: Terraform JSON tree from ``TerraformSynthesizer.synthesis``

    Returns:
        dict of ``type.name`` (``data.type.name`` for data sources) to the
        sorted list of addresses it references, self links removed
    """
    graph = {}
    for address, body in _blocks(synthesis):
        graph[address] = [ref for ref in block_references(body) if ref != address]
    return dict(sorted(graph.items()))


def find_circular_refs(graph: Dict[str, List[str]]) -> List[List[str]]:
    """Find 2-node circular references (A->B->A) in the dependency graph.

    Only detects direct bidirectional links between two nodes.

    Args:
        graph: Dictionary where keys are nodes and values are lists of connected nodes

    Returns:
        list: List of cycles, each represented as [node_a, node_b, node_a]
    """
    circular_refs = []
    seen = set()
    for node_a, connections in graph.items():
        for node_b in connections:
            if node_b in graph and node_a in graph[node_b]:
                cycle_key = tuple(sorted([node_a, node_b]))
                if cycle_key not in seen:
                    seen.add(cycle_key)
                    circular_refs.append([node_a, node_b, node_a])
    return circular_refs


def unique_services(graph: Dict[str, List[str]]) -> List[str]:
    """Extract unique resource types from graph nodes.

    Args:
        graph: Dependency graph from ``make_graph``

    Returns:
        Sorted list of unique resource types
    """
    service_list = []
    for node in graph:
        parts = node.split(".")
        service = parts[1] if parts[0] == "data" else parts[0]
        service_list.append(service.strip())
    return sorted(set(service_list))
