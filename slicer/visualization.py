#!/usr/bin/env python3
"""
可视化模块

把切片轨迹（networkx.DiGraph）渲染为graphviz图
"""

import html
from typing import Optional

from graphviz import Digraph

from .models import SliceResult, SliceVerdict

_VERDICT_COLORS = {
    SliceVerdict.SEMINAL.value: 'lightcoral',
    SliceVerdict.NOT_SEMINAL.value: 'lightgrey',
    SliceVerdict.INCONCLUSIVE.value: 'khaki',
}

_LEAF_COLORS = {
    'input': 'red',
    'literal': 'grey',
    'missing': 'grey',
    'cycle': 'orange',
    'unresolved': 'orange',
}


def trace_to_dot(result: SliceResult, filename: str = 'SLICE') -> Digraph:
    """生成切片轨迹的Digraph"""
    trace = result.trace
    dot = Digraph(comment=filename, strict=True)
    dot.attr(rankdir='TB')
    dot.attr('node', fontname='Arial')
    dot.attr('edge', fontname='Arial')

    # 轨迹节点名含':'，graphviz中会被当作端口，统一换成编号
    ids = {node: f"n{i}" for i, node in enumerate(sorted(trace.nodes))}
    root = trace.graph.get('root')

    for node in sorted(trace.nodes):
        data = trace.nodes[node]
        if data.get('kind') == 'leaf':
            reason, _, label = node.partition(':')
            dot.node(ids[node], label=f"<<B>{reason}</B><BR/>{html.escape(label)}>",
                     shape='box', style='rounded', color=_LEAF_COLORS.get(reason, 'black'))
            continue
        label = f"<{html.escape(data.get('name', node))}<SUB>{html.escape(str(data.get('scope', '')))}</SUB>>"
        fill = _VERDICT_COLORS.get(data.get('verdict'), 'white')
        shape = 'doubleoctagon' if node == root else 'ellipse'
        dot.node(ids[node], label=label, shape=shape, style='filled', fillcolor=fill)

    for source, target, data in sorted(trace.edges(data=True), key=lambda e: (e[0], e[1])):
        line = data.get('line')
        label = f"L{line}" if line is not None else ''
        if data.get('kind') == 'param':
            # 形参 -> 实参：跨过程边
            dot.edge(ids[source], ids[target], label=label, color='blue', penwidth='2')
        else:
            dot.edge(ids[source], ids[target], label=label, style='dotted', color='red')
    return dot


def visualize_slice(result: SliceResult, filename: Optional[str] = None, pdf: bool = True,
                    dot_format: bool = True, view: bool = False) -> Digraph:
    """可视化切片轨迹"""
    if filename is None:
        seed = result.seed
        filename = f"slice_{seed.name}_line{seed.line}"
    dot = trace_to_dot(result, filename)

    # 保存.dot文件
    if dot_format:
        with open(f"{filename}.dot", 'w', encoding='utf-8') as f:
            f.write(dot.source)

    # 生成PDF文件
    if pdf:
        dot.render(filename, view=view, cleanup=True)

    return dot
