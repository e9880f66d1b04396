"""Suppliers of the upstream exchange credential (the ``etsToken``)."""

import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

CredentialSource = Union[None, str, Callable[[], Union[str, Awaitable[str]]]]


class CredentialSupplier:
    """Resolves the exchange credential presented to the issuer."""

    async def resolve(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class ConstantCredential(CredentialSupplier):
    """A credential known up front. An empty value is sent as ``""``."""

    value: str = ""

    async def resolve(self) -> str:
        return self.value


@dataclass(frozen=True)
class DeferredCredential(CredentialSupplier):
    """A zero-argument callable returning the credential or an awaitable of it."""

    provider: Callable[[], Union[str, Awaitable[str]]]

    async def resolve(self) -> str:
        result = self.provider()
        if inspect.isawaitable(result):
            result = await result
        return result or ""


def credential_supplier(source: Union[CredentialSource, CredentialSupplier]) -> CredentialSupplier:
    """
    Wrap a string, a callable or None into a CredentialSupplier.

    Raises:
        TypeError: For any other kind of value
    """
    if isinstance(source, CredentialSupplier):
        return source
    if not source:
        return ConstantCredential()
    if isinstance(source, str):
        return ConstantCredential(source)
    if callable(source):
        return DeferredCredential(source)
    raise TypeError(f"Unsupported credential source: {type(source).__name__}")
