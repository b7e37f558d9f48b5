# voicebridge/schemas/__init__.py
"""
Schema module initialization.
Exports all schema classes from submodules for convenient imports.
"""
from .conversation import *
from .summary import *
from .vocabulary import *
