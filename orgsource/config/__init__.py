"""Configuration"""
from .config import BaseConfig, EngineConfig
from .enums import EventLogBackend, MessageBroker
