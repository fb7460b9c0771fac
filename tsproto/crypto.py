"""Key handling for P-256 identities and Ed25519 keys used by the protocol."""

from __future__ import annotations

import base64
import binascii
import hashlib
import secrets
from dataclasses import dataclass
from typing import List, Tuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

_FIELD_SIZE = 32

# Xored onto saved identities in the client settings file.
_IDENTITY_OBFUSCATION = (
    b"b9dfaa7bee6ac57ac7b65f1094a1c155"
    b"e747327bc2fe5d51c512023fe54a280201004e90ad1daaae1075d53b7d571c30e063b5a"
    b"62a4a017bb394833aa0983e6e"
)


class CryptoError(ValueError):
    """Raised when a key or signature cannot be handled."""


class WrongSignature(CryptoError):
    """The signature does not match the data and key."""

    def __init__(self, key: "EccKeyPubP256", data: bytes, signature: bytes) -> None:
        super().__init__("Wrong signature")
        self.key = key
        self.data = bytes(data)
        self.signature = bytes(signature)


def encode_password(password: bytes) -> str:
    """Passwords are encoded as base64(sha1(password))."""
    return base64.b64encode(hashlib.sha1(bytes(password)).digest()).decode("ascii")


def _b64decode(data: Union[str, bytes]) -> bytes:
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CryptoError(f"Invalid base64: {e}") from e


def _b64encode(data: bytes) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def _magnitude(value: int) -> bytes:
    n = abs(value)
    return n.to_bytes(max(1, (n.bit_length() + 7) // 8), "big")


# Minimal DER support -----------------------------------------------------


@dataclass(frozen=True)
class _Sequence:
    items: Tuple[object, ...]


@dataclass(frozen=True)
class _Integer:
    value: int


@dataclass(frozen=True)
class _BitString:
    bits: int
    content: bytes


@dataclass(frozen=True)
class _Other:
    tag: int
    content: bytes


def _der_decode(data: bytes) -> List[object]:
    blocks = []
    pos = 0
    while pos < len(data):
        block, pos = _der_block(data, pos)
        blocks.append(block)
    return blocks


def _der_block(data: bytes, pos: int) -> Tuple[object, int]:
    if pos + 2 > len(data):
        raise CryptoError("Invalid ASN.1: truncated block")
    tag = data[pos]
    if tag & 0x1F == 0x1F:
        raise CryptoError("Invalid ASN.1: unsupported tag")
    length = data[pos + 1]
    pos += 2
    if length & 0x80:
        count = length & 0x7F
        if count == 0 or pos + count > len(data):
            raise CryptoError("Invalid ASN.1: bad length")
        length = int.from_bytes(data[pos : pos + count], "big")
        pos += count
    end = pos + length
    if end > len(data):
        raise CryptoError("Invalid ASN.1: truncated block")
    content = data[pos:end]
    if tag == 0x30:
        return _Sequence(tuple(_der_decode(content))), end
    if tag == 0x02:
        if not content:
            raise CryptoError("Invalid ASN.1: empty integer")
        return _Integer(int.from_bytes(content, "big", signed=True)), end
    if tag == 0x03:
        if not content or content[0] > 7:
            raise CryptoError("Invalid ASN.1: bad bit string")
        bits = (len(content) - 1) * 8 - content[0]
        if bits < 0:
            raise CryptoError("Invalid ASN.1: bad bit string")
        return _BitString(bits, content[1:]), end
    return _Other(tag, content), end


def _der_tlv(tag: int, content: bytes) -> bytes:
    n = len(content)
    if n < 0x80:
        length = bytes((n,))
    else:
        raw = n.to_bytes((n.bit_length() + 7) // 8, "big")
        length = bytes((0x80 | len(raw),)) + raw
    return bytes((tag,)) + length + content


def _der_int(value: int) -> bytes:
    size = value.bit_length() // 8 + 1
    return _der_tlv(0x02, value.to_bytes(size, "big", signed=True))


def _der_bits(bits: int, content: bytes) -> bytes:
    unused = len(content) * 8 - bits
    return _der_tlv(0x03, bytes((unused,)) + content)


def _tomcrypt_sequence(data: bytes) -> Tuple[object, ...]:
    blocks = _der_decode(bytes(data))
    if len(blocks) != 1:
        raise CryptoError("More than one ASN.1 block")
    seq = blocks[0]
    if not isinstance(seq, _Sequence):
        raise CryptoError("Invalid ASN.1: Expected a sequence")
    if not seq.items or not isinstance(seq.items[0], _BitString):
        raise CryptoError("Invalid ASN.1: Expected a bitstring")
    return seq.items


def _nth_int(items: Tuple[object, ...], index: int):
    if index < len(items) and isinstance(items[index], _Integer):
        return items[index].value
    return None


# P-256 ------------------------------------------------------------------


class EccKeyPubP256:
    """A public ECC key on the P-256 (prime256v1) curve."""

    __slots__ = ("key",)

    def __init__(self, key: ec.EllipticCurvePublicKey) -> None:
        self.key = key

    @classmethod
    def from_short(cls, data: bytes) -> "EccKeyPubP256":
        """Parse a SEC1 encoded point."""
        try:
            return cls(ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), bytes(data)))
        except (ValueError, TypeError) as e:
            raise CryptoError("Failed to parse public key") from e

    @classmethod
    def from_ts(cls, data: str) -> "EccKeyPubP256":
        """From a base64 encoded tomcrypt key."""
        return cls.from_tomcrypt(_b64decode(data))

    @classmethod
    def from_tomcrypt(cls, data: bytes) -> "EccKeyPubP256":
        """Decode the public key from the ASN.1 DER form tomcrypt uses."""
        items = _tomcrypt_sequence(data)
        flag = items[0]
        if flag.bits != 1 or flag.content[0] & 0x80:
            raise CryptoError("Invalid ASN.1: Expected a public key, not a private key")
        x, y = _nth_int(items, 2), _nth_int(items, 3)
        if x is None or y is None:
            raise CryptoError("Invalid ASN.1: Public key not found")
        for coord in (x, y):
            got = len(_magnitude(coord))
            if got != _FIELD_SIZE:
                raise CryptoError(
                    f"Failed to parse public key, expected length {_FIELD_SIZE} but got {got}"
                )
        try:
            key = ec.EllipticCurvePublicNumbers(abs(x), abs(y), ec.SECP256R1()).public_key()
        except ValueError as e:
            raise CryptoError("Failed to parse public key") from e
        return cls(key)

    def to_ts(self) -> str:
        """Base64 encoded public tomcrypt key."""
        return _b64encode(self.to_tomcrypt())

    def to_tomcrypt(self) -> bytes:
        numbers = self.key.public_numbers()
        return _der_tlv(
            0x30,
            _der_bits(1, b"\x00") + _der_int(32) + _der_int(numbers.x) + _der_int(numbers.y),
        )

    def to_short(self) -> bytes:
        """The uncompressed SEC1 encoding of the point."""
        return self.key.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)

    def get_uid_no_base64(self) -> bytes:
        """sha1 of the ts encoded key."""
        return hashlib.sha1(self.to_ts().encode("ascii")).digest()

    def get_uid(self) -> str:
        """base64(sha1(ts encoded key))."""
        return _b64encode(self.get_uid_no_base64())

    def verify(self, data: bytes, signature: bytes) -> None:
        """Check a DER encoded ECDSA/SHA-256 signature; raise WrongSignature if invalid."""
        try:
            self.key.verify(bytes(signature), bytes(data), ec.ECDSA(hashes.SHA256()))
        except (InvalidSignature, ValueError) as e:
            raise WrongSignature(self, data, signature) from e

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EccKeyPubP256):
            return NotImplemented
        return self.to_short() == other.to_short()

    def __hash__(self) -> int:
        return hash(self.to_short())

    def __repr__(self) -> str:
        return f"EccKeyPubP256({self.to_ts()})"


class EccKeyPrivP256:
    """A private ECC key on the P-256 (prime256v1) curve."""

    __slots__ = ("key",)

    def __init__(self, key: ec.EllipticCurvePrivateKey) -> None:
        self.key = key

    @classmethod
    def create(cls) -> "EccKeyPrivP256":
        """Create a new random key pair."""
        return cls(ec.generate_private_key(ec.SECP256R1()))

    @classmethod
    def import_key(cls, data: bytes) -> "EccKeyPrivP256":
        """Import the key from any of the known formats."""
        data = bytes(data)
        if not data:
            raise CryptoError("Key data is empty")
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            text = None
        if text is not None:
            try:
                return cls.import_str(text)
            except CryptoError:
                pass
        for parse in (cls.from_tomcrypt, cls.from_short):
            try:
                return parse(data)
            except CryptoError:
                pass
        raise CryptoError("Any known methods to decode the key failed")

    @classmethod
    def import_str(cls, s: str) -> "EccKeyPrivP256":
        """Import the key from any of the known text formats."""
        try:
            return cls.import_key(_b64decode(s))
        except CryptoError:
            pass
        try:
            return cls.from_ts_obfuscated(s)
        except CryptoError:
            pass
        raise CryptoError("Any known methods to decode the key failed")

    @classmethod
    def from_short(cls, data: bytes) -> "EccKeyPrivP256":
        """From the 32 byte big-endian private scalar."""
        data = bytes(data)
        if len(data) != _FIELD_SIZE:
            raise CryptoError("Failed to parse short private key")
        try:
            return cls(ec.derive_private_key(int.from_bytes(data, "big"), ec.SECP256R1()))
        except ValueError as e:
            raise CryptoError("Failed to parse short private key") from e

    def to_short(self) -> bytes:
        """The 32 byte big-endian private scalar."""
        return self.key.private_numbers().private_value.to_bytes(_FIELD_SIZE, "big")

    @classmethod
    def from_ts(cls, data: str) -> "EccKeyPrivP256":
        """From a base64 encoded tomcrypt key."""
        return cls.from_tomcrypt(_b64decode(data))

    @classmethod
    def from_ts_obfuscated(cls, data: str) -> "EccKeyPrivP256":
        """From the obfuscated form stored in the client configuration (without level)."""
        buf = bytearray(_b64decode(data))
        if len(buf) < 20:
            raise CryptoError("Not a obfuscated TeamSpeak key")
        _xor_hash(buf)
        _xor_static(buf)
        try:
            text = bytes(buf).decode("utf-8")
        except UnicodeDecodeError as e:
            raise CryptoError("Obfuscated key is not valid UTF-8") from e
        return cls.from_ts(text)

    @classmethod
    def from_tomcrypt(cls, data: bytes) -> "EccKeyPrivP256":
        """Decode the private key from the ASN.1 DER form tomcrypt uses.

        A two bit flag means the public key is left out.
        """
        items = _tomcrypt_sequence(data)
        flag = items[0]
        if flag.bits not in (1, 2) or not flag.content[0] & 0x80:
            raise CryptoError("Invalid ASN.1: Does not contain a private key")
        value = _nth_int(items, 4 if flag.bits == 1 else 2)
        if value is None:
            raise CryptoError("Invalid ASN.1: Does not contain a private key")
        return cls.from_short(_magnitude(value))

    def to_ts(self) -> str:
        """Base64 encoded private tomcrypt key."""
        return _b64encode(self.to_tomcrypt())

    def to_ts_obfuscated(self) -> str:
        """Store as an obfuscated identity."""
        buf = bytearray(self.to_ts().encode("ascii"))
        _xor_static(buf)
        _xor_hash(buf)
        return _b64encode(bytes(buf))

    def to_tomcrypt(self) -> bytes:
        numbers = self.key.private_numbers()
        pub = numbers.public_numbers
        return _der_tlv(
            0x30,
            _der_bits(1, b"\x80")
            + _der_int(32)
            + _der_int(pub.x)
            + _der_int(pub.y)
            + _der_int(numbers.private_value),
        )

    def create_shared_secret(self, other: EccKeyPubP256) -> bytes:
        """ECDH with the public key of the other side; the raw x coordinate."""
        return self.key.exchange(ec.ECDH(), other.key)

    def sign(self, data: bytes) -> bytes:
        """A DER encoded ECDSA/SHA-256 signature."""
        return self.key.sign(bytes(data), ec.ECDSA(hashes.SHA256()))

    def to_pub(self) -> EccKeyPubP256:
        return EccKeyPubP256(self.key.public_key())

    def __repr__(self) -> str:
        return f"EccKeyPrivP256({_b64encode(self.to_short())})"


def _xor_static(buf: bytearray) -> None:
    for i in range(min(len(buf), 100)):
        buf[i] ^= _IDENTITY_OBFUSCATION[i]


def _xor_hash(buf: bytearray) -> None:
    tail = bytes(buf[20:])
    end = tail.find(b"\x00")
    digest = hashlib.sha1(tail if end < 0 else tail[:end]).digest()
    for i, b in enumerate(digest):
        buf[i] ^= b


# Ed25519 ----------------------------------------------------------------

_P = 2**255 - 19
_L = 2**252 + 27742317777372353535851937790883648493
_D = -121665 * pow(121666, _P - 2, _P) % _P
_SQRT_M1 = pow(2, (_P - 1) // 4, _P)
_BX = 15112221349535400772501151409588531511454012693041857206046113283949847762202
_BY = 46316835694926478169428394003475163141307993866256225615783033603165251855960
_BASE = (_BX, _BY, 1, _BX * _BY % _P)
_IDENTITY = (0, 1, 1, 0)

_Point = Tuple[int, int, int, int]


def _add(p: _Point, q: _Point) -> _Point:
    x1, y1, z1, t1 = p
    x2, y2, z2, t2 = q
    a = (y1 - x1) * (y2 - x2) % _P
    b = (y1 + x1) * (y2 + x2) % _P
    c = 2 * _D * t1 * t2 % _P
    d = 2 * z1 * z2 % _P
    e, f, g, h = b - a, d - c, d + c, b + a
    return (e * f % _P, g * h % _P, f * g % _P, e * h % _P)


def _mul(point: _Point, scalar: int) -> _Point:
    result = _IDENTITY
    for bit in bin(scalar)[2:] if scalar else "":
        result = _add(result, result)
        if bit == "1":
            result = _add(result, point)
    return result


def _compress(point: _Point) -> bytes:
    x, y, z, _ = point
    zi = pow(z, _P - 2, _P)
    x, y = x * zi % _P, y * zi % _P
    return (y | ((x & 1) << 255)).to_bytes(32, "little")


def _decompress(data: bytes) -> _Point:
    raw = int.from_bytes(data, "little")
    sign = raw >> 255
    y = (raw & ((1 << 255) - 1)) % _P
    u = (y * y - 1) % _P
    v = (_D * y * y + 1) % _P
    x = u * pow(v, 3, _P) * pow(u * pow(v, 7, _P), (_P - 5) // 8, _P) % _P
    vx2 = v * x * x % _P
    if vx2 != u:
        if vx2 == (-u) % _P:
            x = x * _SQRT_M1 % _P
        else:
            raise CryptoError("Point is not on the curve")
    if (x & 1) != sign:
        x = (-x) % _P
    return (x, y, 1, x * y % _P)


def _key_bytes(data: bytes) -> bytes:
    data = bytes(data)
    if len(data) != 32:
        raise CryptoError("Wrong key length")
    return data


@dataclass(frozen=True)
class EccKeyPubEd25519:
    """A compressed public point on Ed25519."""

    data: bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> "EccKeyPubEd25519":
        return cls(_key_bytes(data))

    @classmethod
    def from_base64(cls, data: str) -> "EccKeyPubEd25519":
        return cls.from_bytes(_b64decode(data))

    def to_base64(self) -> str:
        return _b64encode(self.data)

    def __repr__(self) -> str:
        return f"EccKeyPubEd25519({self.to_base64()})"


@dataclass(frozen=True)
class EccKeyPrivEd25519:
    """A scalar on Ed25519, reduced modulo the group order."""

    scalar: int

    @classmethod
    def create(cls) -> "EccKeyPrivEd25519":
        """A random scalar; not used for identities, as they are not canonical."""
        return cls(int.from_bytes(secrets.token_bytes(64), "little") % _L)

    @classmethod
    def from_base64(cls, data: str) -> "EccKeyPrivEd25519":
        return cls.from_bytes(_b64decode(data))

    @classmethod
    def from_bytes(cls, data: bytes) -> "EccKeyPrivEd25519":
        return cls(int.from_bytes(_key_bytes(data), "little") % _L)

    def to_base64(self) -> str:
        return _b64encode(self.scalar.to_bytes(32, "little"))

    def create_shared_secret(self, pub_key: Union[EccKeyPubEd25519, bytes]) -> bytes:
        """Multiply the other side's public point with this scalar, compressed."""
        data = pub_key.data if isinstance(pub_key, EccKeyPubEd25519) else _key_bytes(pub_key)
        return _compress(_mul(_decompress(data), self.scalar))

    def to_pub(self) -> EccKeyPubEd25519:
        return EccKeyPubEd25519(_compress(_mul(_BASE, self.scalar)))

    def __repr__(self) -> str:
        return f"EccKeyPrivEd25519({self.to_base64()})"