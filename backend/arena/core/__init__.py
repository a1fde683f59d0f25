"""Core module - logging and shared catalogues."""

from .catalog import AGENTS, AGENT_IDS, MODELS, AgentInfo, ModelInfo
from .logging_config import setup_logging

__all__ = ['AGENTS', 'AGENT_IDS', 'MODELS', 'AgentInfo', 'ModelInfo', 'setup_logging']
