"""
Tree-to-text conversion engine.

Consumes a generic syntax tree (mab2erb.nodes) and produces ERB text.
No parsing, file I/O or process-wide state lives here.
"""

from .attributes import Attribute, AttributeSerializer, ConditionalAttribute, TagDescriptor
from .buffer import OutputBuffer, OutputLine
from .control_flow import ControlFlowReconstructor
from .converter import convert
from .dispatcher import NodeDispatcher, REJECTED_KINDS
from .extractor import ContentExtractor, InterpolationStyle, quote

__all__ = [
    "convert",
    "OutputBuffer",
    "OutputLine",
    "ContentExtractor",
    "InterpolationStyle",
    "quote",
    "AttributeSerializer",
    "Attribute",
    "ConditionalAttribute",
    "TagDescriptor",
    "ControlFlowReconstructor",
    "NodeDispatcher",
    "REJECTED_KINDS",
]
