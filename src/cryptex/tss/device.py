from __future__ import annotations

from typing import Any, Dict, Mapping, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict


class DeviceIdentityError(Exception):
    key = ""

    def __init__(self):
        super().__init__(f"device did not report an integer {self.key}")


class MissingBoardID(DeviceIdentityError):
    key = "BoardId"


class MissingChipID(DeviceIdentityError):
    key = "ChipID"


class MissingECID(DeviceIdentityError):
    key = "UniqueChipID"


@runtime_checkable
class DeviceTransport(Protocol):
    """What the signing and install paths need from a connected device."""

    def get_properties(self) -> Mapping[str, Any]: ...
    def get_cryptex_nonce(self) -> bytes: ...
    def install_cryptex(self, trust_cache: bytes, info_plist: bytes, signature: bytes, cryptex: bytes) -> Dict[str, Any]: ...


def _int_property(props: Mapping[str, Any], err: type[DeviceIdentityError]) -> int:
    value = props.get(err.key)
    # bool is an int subclass; a flag is not an identifier
    if not isinstance(value, int) or isinstance(value, bool):
        raise err()
    return value


class DeviceIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    production_mode: bool = True
    security_mode: bool = True
    board_id: int
    chip_id: int
    ecid: int
    security_domain: int = 1
    nonce: bytes

    @classmethod
    def from_device(cls, device: DeviceTransport) -> "DeviceIdentity":
        props = device.get_properties()
        board_id = _int_property(props, MissingBoardID)
        chip_id = _int_property(props, MissingChipID)
        ecid = _int_property(props, MissingECID)
        return cls(
            board_id=board_id,
            chip_id=chip_id,
            ecid=ecid,
            nonce=device.get_cryptex_nonce(),
        )
