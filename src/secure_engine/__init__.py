"""Secure Engine scan client.

Normalizes SAST and DAST findings from a remote scan service into one
classified, scored result, and drives the client-side scan session.
"""

__version__ = "0.1.0"
