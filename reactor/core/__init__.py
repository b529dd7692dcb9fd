"""Core functionality for Reactor.

Submodules are imported directly (``from reactor.core.naming import ...``);
the service layer depends on ``reactor.core.constants``, so this package
does not import its submodules eagerly.
"""
