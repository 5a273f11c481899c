"""Access package.

Public API:
- AccessController: privileged identity, context-bound current caller, role transfer.
- is_null_identity / ZERO_IDENTITY: null-identity checks shared with the ledger.
"""

from .controller import AccessController, AccessDenied  # re-export
from .identity import ZERO_IDENTITY, is_null_identity
