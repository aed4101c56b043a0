"""Identifiers of well-known build stacks and predicates over them."""

from __future__ import annotations

BIONIC_STACK_ID = "io.buildpacks.stacks.bionic"
BIONIC_TINY_STACK_ID = "io.paketo.stacks.tiny"
TINY_STACK_ID = "io.paketo.stacks.tiny"
JAMMY_STACK_ID = "io.buildpacks.stacks.jammy"
JAMMY_TINY_STACK_ID = "io.buildpacks.stacks.jammy.tiny"
JAMMY_STATIC_STACK_ID = "io.buildpacks.stacks.jammy.static"

_BIONIC = frozenset({BIONIC_STACK_ID, BIONIC_TINY_STACK_ID, TINY_STACK_ID})
_JAMMY = frozenset({JAMMY_STACK_ID, JAMMY_TINY_STACK_ID, JAMMY_STATIC_STACK_ID})
_TINY = frozenset({BIONIC_TINY_STACK_ID, JAMMY_TINY_STACK_ID, TINY_STACK_ID})
_STATIC = frozenset({JAMMY_STATIC_STACK_ID})
_WITH_SHELL = frozenset({BIONIC_STACK_ID, JAMMY_STACK_ID})


def is_bionic_stack(stack: str) -> bool:
    """Return True if ``stack`` is one of the bionic variants."""
    return stack in _BIONIC


def is_jammy_stack(stack: str) -> bool:
    """Return True if ``stack`` is one of the jammy variants."""
    return stack in _JAMMY


def is_tiny_stack(stack: str) -> bool:
    """Return True if ``stack`` is one of the tiny variants."""
    return stack in _TINY


def is_static_stack(stack: str) -> bool:
    """Return True if ``stack`` is one of the static variants."""
    return stack in _STATIC


def is_shell_present_on_stack(stack: str) -> bool:
    """Return True if ``stack`` is known to have a shell."""
    return stack in _WITH_SHELL