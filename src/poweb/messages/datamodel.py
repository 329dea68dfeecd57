# SPDX-FileCopyrightText: 2024-present Dan Pascu <dan@aethereal.link>
#
# SPDX-License-Identifier: AGPL-3.0-or-later

from enum import IntEnum
from io import BytesIO
from types import new_class
from typing import ClassVar, TypeAlias

__all__ = (  # noqa: RUF022
    'WireData',
    'MessageType',

    'byte_length',
    'read_buffer',

    'UnsignedIntegerAdapter',
    'UInt8Adapter',

    'OpaqueAdapter',
    'Opaque16Adapter',
    'Opaque24Adapter',
    'Opaque32Adapter',

    'StringAdapter',
    'String8Adapter',
)


WireData: TypeAlias = bytes | bytearray | memoryview | BytesIO


class MessageType(IntEnum):
    challenge = 1
    challenge_response = 2
    parcel_delivery = 3
    private_node_registration = 4

    def __repr__(self) -> str:
        return f'{self.__class__.__qualname__}.{self.name}'


def byte_length(number: int) -> int:
    """Return the number of bytes needed to represent the number"""
    return (number.bit_length() + 7) // 8


def read_buffer(buffer: WireData) -> BytesIO:
    return buffer if isinstance(buffer, BytesIO) else BytesIO(buffer)


class UnsignedIntegerAdapter:
    _bits_: ClassVar[int] = NotImplemented
    _size_: ClassVar[int] = NotImplemented

    def __init_subclass__(cls, *, bits: int = NotImplemented, **kw: object) -> None:
        if bits is not NotImplemented:
            cls._bits_ = bits
            cls._size_ = bits // 8
        super().__init_subclass__(**kw)

    @classmethod
    def from_wire(cls, buffer: WireData) -> int:
        data = read_buffer(buffer).read(cls._size_)
        if len(data) < cls._size_:
            raise ValueError(f'Insufficient data in buffer to extract an unsigned {cls._bits_}-bit integer')
        return int.from_bytes(data, byteorder='big')

    @classmethod
    def to_wire(cls, value: int, /) -> bytes:
        return cls.validate(value).to_bytes(cls._size_, byteorder='big')

    @classmethod
    def validate(cls, value: int, /) -> int:
        if value < 0 or value.bit_length() > cls._bits_:
            raise ValueError(f'Value is out of range for unsigned {cls._bits_}-bits integer: {value!r}')
        return value


class UInt8Adapter(UnsignedIntegerAdapter, bits=8):
    pass


class OpaqueAdapter:
    """Adapter for a bytes buffer of up to maxsize bytes, prefixed with its length"""

    _maxsize_: ClassVar[int] = NotImplemented
    _sizelen_: ClassVar[int] = NotImplemented

    def __init_subclass__(cls, *, maxsize: int = NotImplemented, **kw: object) -> None:
        if maxsize is not NotImplemented:
            cls._maxsize_ = maxsize
            cls._sizelen_ = byte_length(maxsize)
        super().__init_subclass__(**kw)

    @classmethod
    def from_wire(cls, buffer: WireData) -> bytes:
        buffer = read_buffer(buffer)
        length_data = buffer.read(cls._sizelen_)
        if len(length_data) < cls._sizelen_:
            raise ValueError('Insufficient data in buffer to extract the opaque bytes length')
        data_length = int.from_bytes(length_data, byteorder='big')
        opaque_data = buffer.read(data_length)
        if len(opaque_data) < data_length:
            raise ValueError('Insufficient data in buffer to extract the opaque bytes')
        return opaque_data

    @classmethod
    def to_wire(cls, value: bytes, /) -> bytes:
        value = cls.validate(value)
        return len(value).to_bytes(cls._sizelen_, byteorder='big') + value

    @classmethod
    def validate(cls, value: bytes, /) -> bytes:
        if len(value) > cls._maxsize_:
            raise ValueError(f'Value is too long for opaque bytes (max length is {cls._maxsize_}, value has {len(value)} bytes)')
        return bytes(value)


class Opaque16Adapter(OpaqueAdapter, maxsize=2**16 - 1):
    pass


class Opaque24Adapter(OpaqueAdapter, maxsize=2**24 - 1):
    pass


class Opaque32Adapter(OpaqueAdapter, maxsize=2**32 - 1):
    pass


class StringAdapter:
    """Represent strings as UTF-8 encoded length prefixed bytes limited to maxsize"""

    _opaque_: ClassVar[type[OpaqueAdapter]] = NotImplemented

    def __init_subclass__(cls, *, maxsize: int = NotImplemented, **kw: object) -> None:
        if maxsize is not NotImplemented:
            cls._opaque_ = new_class(f'{cls.__name__}Opaque', (OpaqueAdapter,), {'maxsize': maxsize})
        super().__init_subclass__(**kw)

    @classmethod
    def from_wire(cls, buffer: WireData) -> str:
        data = cls._opaque_.from_wire(buffer)
        try:
            return data.decode()
        except UnicodeDecodeError as exc:
            raise ValueError(f'Cannot decode bytes to string: {exc}') from exc

    @classmethod
    def to_wire(cls, value: str, /) -> bytes:
        return cls._opaque_.to_wire(value.encode())


class String8Adapter(StringAdapter, maxsize=2**8 - 1):
    pass
