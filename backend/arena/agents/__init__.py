"""Agents module - the three arena agents, attachment resolution and dispatch."""

from .base_agent import BaseAgent
from .memory_agent import MemoryAugmentedAgent
from .memorylake_agent import MemoryLakeAgent
from .mem0_agent import Mem0Agent
from .supermemory_agent import SupermemoryAgent
from .attachments import AttachmentError, resolve_file_refs
from .dispatcher import ChatStreamParams, StreamDispatcher, build_default_dispatcher

__all__ = [
    'BaseAgent',
    'MemoryAugmentedAgent',
    'MemoryLakeAgent',
    'Mem0Agent',
    'SupermemoryAgent',
    'AttachmentError',
    'resolve_file_refs',
    'ChatStreamParams',
    'StreamDispatcher',
    'build_default_dispatcher',
]
