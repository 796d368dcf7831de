"""
UserRegistry contract models.

Three functionally equivalent registries with different storage layouts:

- Naive: one slot per field, string names, enumerable user list
- Medium: counters packed into one slot, string names
- Optimized: counters packed into one slot, bytes32 names
"""

from .evm import CallContext, ContractModel, Revert

USER_ADDED = "UserAdded"
USER_DEACTIVATED = "UserDeactivated"

# Packed layout: actions (uint64) | active (uint8) << 64 | createdAt (uint64) << 72
ACTIONS_MASK = (1 << 64) - 1
ACTIVE_BIT = 1 << 64
CREATED_AT_SHIFT = 72


def _word_padded(text: str) -> bytes:
    data = text.encode("utf-8")
    remainder = len(data) % 32
    if remainder:
        data += b"\x00" * (32 - remainder)
    return data


class NaiveUserRegistry(ContractModel):
    contract_name = "NaiveUserRegistry"
    code_size = 2_870
    functions = {
        "addUser": (("user", "address"), ("name", "string")),
        "incrementActions": (("user", "address"),),
        "deactivateUser": (("user", "address"),),
    }

    def addUser(self, ctx: CallContext, user: str, name: str) -> None:
        key = user.lower()
        if self.storage.load(f"users[{key}].exists"):
            raise Revert("user exists")

        self.storage.store_string(f"users[{key}].name", name)
        self.storage.store(f"users[{key}].wallet", int(key, 16))
        self.storage.store(f"users[{key}].actions", 0)
        self.storage.store(f"users[{key}].active", 1)
        self.storage.store(f"users[{key}].createdAt", ctx.timestamp)
        self.storage.store(f"users[{key}].exists", 1)

        length = self.storage.load("userList.length")
        self.storage.store(f"userList[{length}]", int(key, 16))
        self.storage.store("userList.length", length + 1)

        # offset + length + padded string
        ctx.emit(USER_ADDED, topics=2, data=bytes(64) + _word_padded(name))

    def incrementActions(self, ctx: CallContext, user: str) -> None:
        key = user.lower()
        if not self.storage.load(f"users[{key}].active"):
            raise Revert("user not active")
        actions = self.storage.load(f"users[{key}].actions")
        self.storage.store(f"users[{key}].actions", actions + 1)

    def deactivateUser(self, ctx: CallContext, user: str) -> None:
        key = user.lower()
        if not self.storage.load(f"users[{key}].active"):
            raise Revert("user not active")
        self.storage.store(f"users[{key}].active", 0)
        ctx.emit(USER_DEACTIVATED, topics=2)


class _PackedUserRegistry(ContractModel):
    """Shared packed-slot logic; subclasses decide how names are stored."""

    def _store_name(self, key: str, name) -> None:
        raise NotImplementedError

    def _event_data(self, name) -> bytes:
        raise NotImplementedError

    def addUser(self, ctx: CallContext, user: str, name) -> None:
        key = user.lower()
        if self.storage.load(f"users[{key}].packed"):
            raise Revert("user exists")

        self._store_name(key, name)
        self.storage.store(
            f"users[{key}].packed",
            ACTIVE_BIT | ctx.timestamp << CREATED_AT_SHIFT,
        )
        ctx.emit(USER_ADDED, topics=2, data=self._event_data(name))

    def incrementActions(self, ctx: CallContext, user: str) -> None:
        key = user.lower()
        packed = self.storage.load(f"users[{key}].packed")
        if not packed & ACTIVE_BIT:
            raise Revert("user not active")
        if (packed & ACTIONS_MASK) == ACTIONS_MASK:
            raise Revert("actions overflow")
        self.storage.store(f"users[{key}].packed", packed + 1)

    def deactivateUser(self, ctx: CallContext, user: str) -> None:
        key = user.lower()
        packed = self.storage.load(f"users[{key}].packed")
        if not packed & ACTIVE_BIT:
            raise Revert("user not active")
        self.storage.store(f"users[{key}].packed", packed & ~ACTIVE_BIT)
        ctx.emit(USER_DEACTIVATED, topics=2)


class MediumUserRegistry(_PackedUserRegistry):
    contract_name = "MediumUserRegistry"
    code_size = 2_240
    functions = {
        "addUser": (("user", "address"), ("name", "string")),
        "incrementActions": (("user", "address"),),
        "deactivateUser": (("user", "address"),),
    }

    def _store_name(self, key: str, name: str) -> None:
        self.storage.store_string(f"users[{key}].name", name)

    def _event_data(self, name: str) -> bytes:
        return bytes(64) + _word_padded(name)


class OptimizedUserRegistry(_PackedUserRegistry):
    contract_name = "OptimizedUserRegistry"
    code_size = 1_610
    functions = {
        "addUser": (("user", "address"), ("name", "bytes32")),
        "incrementActions": (("user", "address"),),
        "deactivateUser": (("user", "address"),),
    }

    def _store_name(self, key: str, name: bytes) -> None:
        self.storage.store(f"users[{key}].name", int.from_bytes(name, "big"))

    def _event_data(self, name: bytes) -> bytes:
        return bytes(name)


USER_REGISTRY_CONTRACTS = {
    model.contract_name: model
    for model in (NaiveUserRegistry, MediumUserRegistry, OptimizedUserRegistry)
}
