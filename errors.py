class FormatError(ValueError):
    """Raised when a compressed stream does not follow the huffpack format.

    Covers a bad magic number, a malformed tree dump and a body that ends
    before every symbol was decoded.
    """


class CapacityError(ValueError):
    """Raised when a fixed-capacity structure would overflow.

    A code longer than the alphabet allows, or an insert into a full
    queue or stack, means an internal invariant is broken.
    """
