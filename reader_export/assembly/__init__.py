"""
Document assembly.

This package orders normalized fragments into an assembly sequence, renders
it with the discovered typesetters and merges PDF components. It also holds
the attribution collector and the jinja2 templates.
"""

from .attribution import AttributionCollector
from .merger import merge_components
from .renderer import PAGE_BREAK_MARKUP, Renderer
from .sequencer import Sequencer, order_items

__all__ = [
    "PAGE_BREAK_MARKUP",
    "AttributionCollector",
    "Renderer",
    "Sequencer",
    "merge_components",
    "order_items",
]
