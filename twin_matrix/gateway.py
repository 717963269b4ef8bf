#!/usr/bin/env python3
# twin_matrix/gateway.py
# WO-06: Chain gateway strategy (selected once at the composition root)

"""
Contract (WO-06):
The TwinMatrixSBT surface the application reads and writes, behind one
interface. Callers receive a gateway from make_gateway(config) and never
branch on which backend they got.

Contract errors are mirrored as exceptions:
  TokenNotFound      -> TokenNotFoundError
  AlreadyMinted      -> AlreadyMintedError
  NotTokenOwner      -> NotTokenOwnerError
  VersionOutOfRange  -> VersionOutOfRangeError
  AgentNotBound      -> AgentNotBoundError
  EmptyPermission    -> EmptyPermissionError

Versions are 1-based; version digests are BLAKE3 over the 256 matrix bytes.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from twin_matrix.config import Config
from twin_matrix.op.hash import hash_bytes
from twin_matrix.op.mask import (
    permission_mask_to_binary256,
    permission_mask_to_granted_quadrants,
    permission_mask_to_granted_scope,
)
from twin_matrix.op.matrix import WORD_COUNT, bytes_to_words, decode_matrix_to_signature, words_to_bytes

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Base for contract-level failures."""


class TokenNotFoundError(GatewayError):
    pass


class AlreadyMintedError(GatewayError):
    pass


class NotTokenOwnerError(GatewayError):
    pass


class VersionOutOfRangeError(GatewayError):
    pass


class AgentNotBoundError(GatewayError):
    pass


class EmptyPermissionError(GatewayError):
    pass


@dataclass
class OnchainVersion:
    version: int
    block_number: int
    digest: str
    matrix: List[int]


@dataclass
class BoundAgent:
    name: str
    address: str
    permission_mask: int
    active: bool = True

    @property
    def permission_mask_binary256(self) -> str:
        return permission_mask_to_binary256(self.permission_mask)

    @property
    def scope_granted(self) -> List[int]:
        return permission_mask_to_granted_scope(self.permission_mask)

    @property
    def quadrants_granted(self) -> List[str]:
        return permission_mask_to_granted_quadrants(self.permission_mask)


class ChainGateway(ABC):
    """TwinMatrixSBT read/write surface."""

    @abstractmethod
    def mint(self, owner: str) -> int: ...

    @abstractmethod
    def token_id_of(self, owner: str) -> int: ...

    @abstractmethod
    def update_matrix(self, owner: str, token_id: int, words: Sequence[str]) -> int: ...

    @abstractmethod
    def get_version_count(self, token_id: int) -> int: ...

    @abstractmethod
    def get_version_meta(self, token_id: int, version: int) -> Tuple[str, int]: ...

    @abstractmethod
    def get_matrix_at_version(self, token_id: int, version: int) -> List[str]: ...

    @abstractmethod
    def bind_agent(self, owner: str, token_id: int, agent: BoundAgent) -> None: ...

    @abstractmethod
    def get_bound_agents(self, token_id: int) -> List[str]: ...

    @abstractmethod
    def permission_mask_of(self, token_id: int, agent_address: str) -> int: ...

    def latest_version(self, token_id: int) -> int:
        return self.get_version_count(token_id)

    def get_latest_matrix(self, token_id: int) -> List[str]:
        latest = self.latest_version(token_id)
        if latest == 0:
            raise VersionOutOfRangeError(f"token {token_id} has no matrix versions")
        return self.get_matrix_at_version(token_id, latest)

    def versions(self, token_id: int) -> List[OnchainVersion]:
        """All versions, newest first, decoded for display."""
        out = []
        for v in range(self.get_version_count(token_id), 0, -1):
            digest, block = self.get_version_meta(token_id, v)
            matrix = decode_matrix_to_signature(self.get_matrix_at_version(token_id, v))
            out.append(OnchainVersion(version=v, block_number=block, digest=digest, matrix=matrix))
        return out


@dataclass
class _Token:
    owner: str
    versions: List[Tuple[bytes, str, int]] = field(default_factory=list)  # (raw, digest, block)
    agents: Dict[str, BoundAgent] = field(default_factory=dict)


class MockChainGateway(ChainGateway):
    """
    In-process gateway with contract semantics and no network.

    Token ids start at first_token_id; block numbers advance by one per write.
    """

    def __init__(self, first_token_id: int = 1, first_block: int = 1):
        self._tokens: Dict[int, _Token] = {}
        self._owners: Dict[str, int] = {}
        self._next_token_id = first_token_id
        self._block = first_block

    @staticmethod
    def _key(address: str) -> str:
        return address.lower()

    def _token(self, token_id: int) -> _Token:
        tok = self._tokens.get(token_id)
        if tok is None:
            raise TokenNotFoundError(f"token {token_id} not found")
        return tok

    def _owned(self, owner: str, token_id: int) -> _Token:
        tok = self._token(token_id)
        if tok.owner != self._key(owner):
            raise NotTokenOwnerError(f"{owner} does not own token {token_id}")
        return tok

    def mint(self, owner: str) -> int:
        key = self._key(owner)
        if key in self._owners:
            raise AlreadyMintedError(f"{owner} already holds token {self._owners[key]}")
        token_id = self._next_token_id
        self._next_token_id += 1
        self._tokens[token_id] = _Token(owner=key)
        self._owners[key] = token_id
        logger.debug("minted token %d for %s", token_id, owner)
        return token_id

    def token_id_of(self, owner: str) -> int:
        token_id = self._owners.get(self._key(owner))
        if token_id is None:
            raise TokenNotFoundError(f"no token for {owner}")
        return token_id

    def update_matrix(self, owner: str, token_id: int, words: Sequence[str]) -> int:
        """
        Store a new matrix version.

        Raises:
            ValueError: not exactly 8 words
            MalformedWordError: a word is not 32 bytes of hex
        """
        tok = self._owned(owner, token_id)
        words = list(words)
        if len(words) != WORD_COUNT:
            raise ValueError(f"updateMatrix needs {WORD_COUNT} words, got {len(words)}")
        raw = words_to_bytes(words)
        self._block += 1
        tok.versions.append((raw, "0x" + hash_bytes(raw), self._block))
        logger.debug("token %d -> version %d at block %d", token_id, len(tok.versions), self._block)
        return len(tok.versions)

    def get_version_count(self, token_id: int) -> int:
        return len(self._token(token_id).versions)

    def _version(self, token_id: int, version: int) -> Tuple[bytes, str, int]:
        tok = self._token(token_id)
        if not 1 <= version <= len(tok.versions):
            raise VersionOutOfRangeError(
                f"token {token_id} version {version} outside [1,{len(tok.versions)}]"
            )
        return tok.versions[version - 1]

    def get_version_meta(self, token_id: int, version: int) -> Tuple[str, int]:
        _, digest, block = self._version(token_id, version)
        return digest, block

    def get_matrix_at_version(self, token_id: int, version: int) -> List[str]:
        raw, _, _ = self._version(token_id, version)
        return bytes_to_words(raw)

    def bind_agent(self, owner: str, token_id: int, agent: BoundAgent) -> None:
        tok = self._owned(owner, token_id)
        if agent.permission_mask == 0:
            raise EmptyPermissionError(f"agent {agent.address} bound with empty permission")
        permission_mask_to_binary256(agent.permission_mask)  # range check
        tok.agents[self._key(agent.address)] = agent

    def get_bound_agents(self, token_id: int) -> List[str]:
        return [a.address for a in self._token(token_id).agents.values()]

    def permission_mask_of(self, token_id: int, agent_address: str) -> int:
        agent = self._token(token_id).agents.get(self._key(agent_address))
        if agent is None:
            raise AgentNotBoundError(f"agent {agent_address} not bound to token {token_id}")
        return agent.permission_mask


GATEWAYS: Dict[str, Callable[[Config], ChainGateway]] = {
    "mock": lambda cfg: MockChainGateway(),
}


def make_gateway(config: Optional[Config] = None) -> ChainGateway:
    """
    Build the gateway named by config.gateway.

    Raises:
        ValueError: unknown backend name
    """
    cfg = config or Config()
    factory = GATEWAYS.get(cfg.gateway)
    if factory is None:
        raise ValueError(f"unknown gateway {cfg.gateway!r}, expected one of {sorted(GATEWAYS)}")
    return factory(cfg)
