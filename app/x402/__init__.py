"""
x402 Payment Protocol Integration Module.

This module gates the shop's priced routes behind the x402 payment protocol.
Verification and on-chain settlement are done by an external facilitator;
this package only prices requests, talks to the facilitator through the
x402 SDK and reports the outcome.

Key components:
- middleware: per-route payment gate (402 challenge, verify, settle headers)
- settlement: awaitable settlement handle with a bounded wait
- pricing: price labels and USD to token unit conversion
- networks: supported networks, tokens and block explorers
- audit: JSON-lines payment audit log

Configuration is loaded from environment variables via app.core.config.
"""

__version__ = "0.1.0"
