"""
Scoped ownership of raw secret bytes.

A :class:`SecureBytes` is meant to be used as a context manager: the
buffer is overwritten with zeros when the ``with`` block exits, whichever
way it exits.

    with SecureBytes.wrap(base32.decode(text)) as secret:
        digest = compute(Algorithm.SHA1, secret.get_bytes(), message)

Python cannot promise that no other copy of the bytes exists (``hmac``
copies its key, for one), so this is best-effort hygiene for the buffer the
package itself controls.
"""
from hmac import compare_digest
from typing import Union

from .exceptions import SecretReleasedError

BytesLike = Union[bytes, bytearray, memoryview]


class SecureBytes(object):
    __slots__ = ("_data", "_released")

    def __init__(self, data: bytearray) -> None:
        if data is None:
            raise TypeError("data must not be None")
        if not isinstance(data, bytearray):
            raise TypeError("SecureBytes only owns bytearray buffers, use copy_of() for {}".format(type(data).__name__))
        self._data = data
        self._released = False

    @classmethod
    def wrap(cls, data: bytearray) -> "SecureBytes":
        """
        Takes ownership of ``data`` without copying it.

        The caller must drop its own reference; the buffer is zeroed in place
        on release.
        """
        return cls(data)

    @classmethod
    def copy_of(cls, data: BytesLike) -> "SecureBytes":
        """Wraps a private copy of ``data``; the source is left untouched."""
        if data is None:
            raise TypeError("data must not be None")
        return cls(bytearray(data))

    def get_bytes(self) -> bytearray:
        """
        Returns the live buffer. Do not keep references to it past the
        handle's scope.

        :raises SecretReleasedError: if the handle has been released
        """
        if self._released:
            raise SecretReleasedError("secret has already been released")
        return self._data

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Zeroes the buffer. Safe to call more than once."""
        if not self._released:
            for i in range(len(self._data)):
                self._data[i] = 0
            self._released = True

    def __len__(self) -> int:
        return len(self._data)

    def __enter__(self) -> "SecureBytes":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.release()

    def __repr__(self) -> str:
        if self._released:
            return "SecureBytes[released]"
        return "SecureBytes[{} bytes]".format(len(self._data))

    __str__ = __repr__

    def __copy__(self):
        raise TypeError("SecureBytes cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("SecureBytes cannot be copied")

    def __reduce__(self):
        raise TypeError("SecureBytes cannot be pickled")


def constant_time_equals(a: BytesLike, b: BytesLike) -> bool:
    """
    Compares two byte sequences in time that depends only on their length.
    """
    if a is None or b is None:
        return a is b
    return compare_digest(bytes(a), bytes(b))
