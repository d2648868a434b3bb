"""
Sandbox Module

Bounded execution of untrusted JavaScript snippets for the practice console.

This module provides:
- Lexical capability policy that neutralizes denylisted APIs
- One child process and engine context per execution
- Wall-clock budget enforced by the engine and by killing the child
- Console output capture and value formatting
- Best-effort security (documented limitations)

WARNING: This sandbox is NOT a security boundary. The denylist is textual and
can be bypassed by aliasing; it is suitable for a learning app, not for
hostile multi-tenant use.
"""

__version__ = "0.1.0"
