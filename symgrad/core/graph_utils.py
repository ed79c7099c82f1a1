# symgrad/core/graph_utils.py
"""
Graph inspection helpers
Print and analyse the node structure of a Graph
"""

import numpy as np
from typing import Dict
from collections import Counter

from .node import Operation


def _kind(node) -> str:
    return node.operation if isinstance(node, Operation) else type(node).__name__


def get_graph_stats(graph) -> Dict:
    """
    Graph statistics without printing.

    Returns:
        dict with nodes, edges, fan-in/fan-out and an operation breakdown
    """
    nodes = list(graph.nodes.values())
    if not nodes:
        return {
            'nodes': 0,
            'edges': 0,
            'max_fan_in': 0,
            'avg_fan_in': 0.0,
            'max_fan_out': 0,
            'avg_fan_out': 0.0,
            'operations': {}
        }

    inputs = [node.inputs if isinstance(node, Operation) else [] for node in nodes]
    fan_ins = [len(parents) for parents in inputs]

    # fan-out counted on node names
    fan_out_by_name = Counter(parent.name for parents in inputs for parent in parents)
    fan_outs = [fan_out_by_name.get(node.name, 0) for node in nodes]

    return {
        'nodes': len(nodes),
        'edges': sum(fan_ins),
        'max_fan_in': max(fan_ins),
        'avg_fan_in': float(np.mean(fan_ins)),
        'max_fan_out': max(fan_outs),
        'avg_fan_out': float(np.mean(fan_outs)),
        'operations': dict(Counter(_kind(node) for node in nodes))
    }


def print_graph_summary(graph, detailed: bool = False) -> Dict:
    """
    Print a summary of the graph.

    Args:
        graph: Graph to inspect
        detailed: also list every node with its inputs (graphs up to 100 nodes)

    Returns:
        the statistics dict from get_graph_stats
    """
    stats = get_graph_stats(graph)
    if stats['nodes'] == 0:
        print("Empty computation graph")
        return stats

    print("\n" + "="*70)
    print("COMPUTATION GRAPH SUMMARY")
    print("="*70)
    print(f"Total nodes:        {stats['nodes']:,}")
    print(f"Total edges:        {stats['edges']:,}")
    print(f"Max fan-in:         {stats['max_fan_in']}")
    print(f"Avg fan-in:         {stats['avg_fan_in']:.2f}")
    print(f"Max fan-out:        {stats['max_fan_out']}")
    print(f"Avg fan-out:        {stats['avg_fan_out']:.2f}")
    print()
    print("Operation breakdown:")
    for kind, count in Counter(stats['operations']).most_common(10):
        pct = 100.0 * count / stats['nodes']
        print(f"  {kind:14s}: {count:6,} ({pct:5.1f}%)")

    if detailed and stats['nodes'] <= 100:
        print()
        print("="*70)
        print("DETAILED NODE LIST")
        print("="*70)
        for node in graph.nodes.values():
            parents = node.inputs if isinstance(node, Operation) else []
            parent_info = ", ".join(p.name for p in parents)
            print(f"{node.name:24s} {_kind(node):14s} <- [{parent_info}]")

    print("="*70 + "\n")
    return stats
