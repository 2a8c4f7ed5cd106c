"""Wire codec for the KMS signing service.

Request shapes:
    {"operation": "sign_raw", "sign_raw": {"kms_key_id": ..., "data": ...}}
    {"operation": "info", "info": {"kms_key_id": ...}}

Response shapes:
    {"code": 0, "msg": "", "data": {"r": "0x..", "s": "0x..", "v": 27}}
    {"code": 0, "msg": "", "data": {"address": "0x..", "pub_key": "0x.."}}

Any non-zero code is a remote failure carrying msg.
"""

import logging
import re
from dataclasses import dataclass
from typing import Literal, Optional

from eth_keys.datatypes import Signature
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as EthKeysValidationError
from pydantic import BaseModel, ValidationError

from validator_kms.secrets_manager.base import (
    EncodingError,
    RemoteSigningError,
    SecretInfo,
)

logger = logging.getLogger(__name__)

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")

RecoveryBytePolicy = Literal["legacy", "low"]


# ======================
# Wire models
# ======================


class SignRawParams(BaseModel):
    kms_key_id: str
    data: str


class SignRawRequest(BaseModel):
    operation: Literal["sign_raw"] = "sign_raw"
    sign_raw: SignRawParams


class InfoParams(BaseModel):
    kms_key_id: str


class InfoRequest(BaseModel):
    operation: Literal["info"] = "info"
    info: InfoParams


class SignRawData(BaseModel):
    r: str = ""
    s: str = ""
    v: int = 0


class SignRawResponse(BaseModel):
    code: int
    msg: str = ""
    data: Optional[SignRawData] = None


class InfoData(BaseModel):
    address: str = ""
    pub_key: str = ""


class InfoResponse(BaseModel):
    code: int
    msg: str = ""
    data: Optional[InfoData] = None


# ======================
# Signature encoding
# ======================


def encode_canonical_signature(r: int, s: int, v: int) -> bytes:
    """Encode (R, S, V) as 65 bytes: R (32, big-endian) || S (32) || V (1).

    Raises:
        EncodingError: If V is not a recovery id (0 or 1) or R/S are outside
            the secp256k1 group order
    """
    try:
        return Signature(vrs=(v, r, s)).to_bytes()
    except (BadSignature, EthKeysValidationError) as e:
        raise EncodingError(f"Invalid signature values: {e}") from e


@dataclass(frozen=True)
class CanonicalSignature:
    """Signature returned by the KMS service.

    Attributes:
        r: R component
        s: S component
        v: Recovery byte
    """
    r: int
    s: int
    v: int

    def to_bytes(self) -> bytes:
        return encode_canonical_signature(self.r, self.s, self.v)


def parse_hex_int(value: str, field: str) -> int:
    """Parse a 0x-prefixed hex string into a non-negative integer."""
    if not value.startswith(("0x", "0X")):
        raise EncodingError(f"{field} is not 0x-prefixed hex: {value!r}")
    digits = value[2:]
    if not _HEX_DIGITS.fullmatch(digits):
        raise EncodingError(f"{field} to big int error: {value!r}")
    return int(digits, 16)


def recovery_byte(v: int, policy: RecoveryBytePolicy = "legacy") -> int:
    """Reduce V to one byte of its 32-bit big-endian encoding.

    "legacy" takes byte 0 (the most significant byte), which is 0 for
    every V below 2**24. "low" takes the last byte.
    """
    encoded = (v & 0xFFFFFFFF).to_bytes(4, "big")
    if policy == "legacy":
        return encoded[0]
    if policy == "low":
        return encoded[-1]
    raise ValueError(f"Unknown recovery byte policy: {policy!r}")


class SigningProtocolCodec:
    """Builds KMS requests and parses KMS responses.

    Holds only immutable compatibility switches, so one instance can be
    shared across threads.
    """

    encode_canonical_signature = staticmethod(encode_canonical_signature)

    def __init__(
        self,
        legacy_s_from_r: bool = False,
        recovery_byte_policy: RecoveryBytePolicy = "legacy",
    ):
        """Initialize codec.

        Args:
            legacy_s_from_r: Read S from the "r" field, like older deployments
            recovery_byte_policy: Which byte of V to keep ("legacy" or "low")
        """
        if recovery_byte_policy not in ("legacy", "low"):
            raise ValueError(f"Unknown recovery byte policy: {recovery_byte_policy!r}")
        self.legacy_s_from_r = legacy_s_from_r
        self.recovery_byte_policy = recovery_byte_policy

    def encode_sign_request(self, key_id: str, data: bytes) -> bytes:
        # data goes over the wire as text; invalid UTF-8 becomes U+FFFD
        request = SignRawRequest(
            sign_raw=SignRawParams(
                kms_key_id=key_id,
                data=data.decode("utf-8", errors="replace"),
            )
        )
        return request.model_dump_json().encode()

    def decode_sign_response(self, body: bytes) -> CanonicalSignature:
        """Parse a sign_raw response into a signature.

        Raises:
            RemoteSigningError: Response code is not 0
            EncodingError: Body is not a valid response or R/S are malformed
        """
        resp = self._parse(SignRawResponse, body)
        if resp.code != 0:
            raise RemoteSigningError(resp.code, resp.msg)
        if resp.data is None:
            raise EncodingError("sign_raw response has no data")

        r = parse_hex_int(resp.data.r, "R")
        s_field = resp.data.r if self.legacy_s_from_r else resp.data.s
        s = parse_hex_int(s_field, "S")
        v = recovery_byte(resp.data.v, self.recovery_byte_policy)

        logger.debug(f"Decoded KMS signature (v={resp.data.v} -> recovery byte {v})")
        return CanonicalSignature(r=r, s=s, v=v)

    def encode_info_request(self, key_id: str) -> bytes:
        return InfoRequest(info=InfoParams(kms_key_id=key_id)).model_dump_json().encode()

    def decode_info_response(self, body: bytes) -> SecretInfo:
        """Parse an info response into the key's public identity.

        Raises:
            RemoteSigningError: Response code is not 0
            EncodingError: Body is not a valid response
        """
        resp = self._parse(InfoResponse, body)
        if resp.code != 0:
            raise RemoteSigningError(resp.code, resp.msg)
        if resp.data is None or not resp.data.pub_key or not resp.data.address:
            raise EncodingError("info response is missing address or pub_key")

        return SecretInfo(pubkey=resp.data.pub_key, address=resp.data.address)

    @staticmethod
    def _parse(model: type[BaseModel], body: bytes):
        try:
            return model.model_validate_json(body)
        except ValidationError as e:
            raise EncodingError(f"Malformed KMS response: {e}") from e
