"""ncsum: content-addressed naming and integrity checking for file collections.

Files are renamed to the digest of their content, with a ``.ncsum``
descriptor recording the original name.  Descriptors can later restore the
names, verify the payloads, or be bundled with their payload into a single
``.pncsum`` archive.
"""

__version__ = "0.1.0"
__description__ = "Content-addressed naming and integrity checking for file collections"

from ncsum.core.checker import IntegrityChecker
from ncsum.core.packer import Packer
from ncsum.core.renamer import ContentAddressRenamer
from ncsum.models.descriptor import Descriptor

__all__ = [
    "ContentAddressRenamer",
    "Descriptor",
    "IntegrityChecker",
    "Packer",
    "__version__",
]
