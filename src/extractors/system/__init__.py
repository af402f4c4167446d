"""
System extractors - Windows system artifact analysis.

This module provides:
- Registry: installed program enumeration from the Uninstall keys

Usage:
    from extractors.system.registry import ProgramEnumerator, WinregSource
"""

from __future__ import annotations
