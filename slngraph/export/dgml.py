"""DGML export of the project dependency graph.

Every retained project becomes a node, whether or not it is in the build,
and every edge a link. Nodes and links are addressed by descriptor file
name, as Visual Studio's graph viewer shows them.
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Union

from slngraph.graph.manager import ProjectGraph

logger = logging.getLogger("slngraph.export.dgml")

DGML_NAMESPACE = "http://schemas.microsoft.com/vs/2009/dgml"


def _tag(name: str) -> str:
    return f"{{{DGML_NAMESPACE}}}{name}"


def build_dgml(graph: ProjectGraph) -> ET.ElementTree:
    """Build the DGML document for a graph."""
    root = ET.Element(_tag("DirectedGraph"))
    nodes = ET.SubElement(root, _tag("Nodes"))
    links = ET.SubElement(root, _tag("Links"))
    ET.SubElement(root, _tag("Styles"))
    ET.SubElement(root, _tag("Categories"))

    for node in graph.nodes:
        ET.SubElement(
            nodes,
            _tag("Node"),
            {
                "Id": node.file_name,
                "FullPath": node.full_path,
                "OutputBinary": node.output_path,
                "UsedByCount": str(graph.used_by_count(node)),
            },
        )

    for source, target, _kind in graph.edges():
        ET.SubElement(
            links,
            _tag("Link"),
            {"Source": source.file_name, "Target": target.file_name},
        )

    tree = ET.ElementTree(root)
    ET.indent(tree, space="  ")
    return tree


def export_dgml(graph: ProjectGraph, output_path: Union[str, Path]) -> Path:
    """Export graph to DGML format.

    Args:
        graph: Graph to export.
        output_path: Output file path.

    Returns:
        Path: The written file.
    """
    output_path = Path(output_path)
    logger.info("Exporting graph to DGML: %s", output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    ET.register_namespace("", DGML_NAMESPACE)
    build_dgml(graph).write(output_path, encoding="utf-8", xml_declaration=True)

    logger.info(
        "DGML export completed: %d nodes, %d edges",
        graph.node_count(),
        graph.edge_count(),
    )
    return output_path
