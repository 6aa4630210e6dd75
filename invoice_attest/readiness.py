"""
Chain-readiness state machine.

Attestations may only be registered while the caller's wallet is connected
to the network the invoice targets. The state lives in an explicit
``ChainReadiness`` object owned by one session and passed to the
registration step, instead of being read from ambient process state.

    Disconnected --check--> Ready | WrongNetwork
    WrongNetwork --request_switch--> SwitchPending
    SwitchPending --accepted--> Ready
    SwitchPending --unknown chain (4902)--> SwitchPending (add chain, retry)
    SwitchPending --declined / failed--> WrongNetwork

Selecting a different target network resets the machine to Disconnected.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Protocol, Tuple

from .config import NetworkProfile, get_network_profile
from .errors import InvalidTransition, NetworkNotReady, WalletRequestError
from .schema import Network

UNRECOGNIZED_CHAIN = 4902


class ReadinessState(str, Enum):
    DISCONNECTED = "disconnected"
    WRONG_NETWORK = "wrong_network"
    READY = "ready"
    SWITCH_PENDING = "switch_pending"


class Wallet(Protocol):
    """
    The subset of an EIP-1193 wallet the readiness check talks to.
    Failures are reported as ``WalletRequestError``.
    """

    def chain_id(self) -> str: ...

    def switch_chain(self, chain_id: str) -> None: ...

    def add_chain(self, profile: NetworkProfile) -> None: ...


class ChainReadiness:
    def __init__(self, wallet: Optional[Wallet] = None, target_network: Optional[Network] = None) -> None:
        self.wallet = wallet
        self.target_network = Network(target_network) if target_network is not None else None
        self.state = ReadinessState.DISCONNECTED
        self.history: List[Tuple[ReadinessState, ReadinessState]] = []

    def _move(self, new_state: ReadinessState) -> ReadinessState:
        if new_state is not self.state:
            logging.info(f"Chain readiness: {self.state.value} -> {new_state.value}")
            self.history.append((self.state, new_state))
            self.state = new_state
        return self.state

    @property
    def is_ready(self) -> bool:
        return self.state is ReadinessState.READY

    def select_network(self, network: Optional[Network]) -> ReadinessState:
        """
        Change the target network. Any previous evaluation no longer applies.
        """
        self.target_network = Network(network) if network is not None else None
        self.history.clear()
        self.state = ReadinessState.DISCONNECTED
        return self.state

    def check(self) -> ReadinessState:
        """
        Compare the wallet's current chain with the target network.

        Without a wallet or a target network there is nothing to compare and
        the machine stays Disconnected. May be re-run at any time.
        """
        if self.state is ReadinessState.SWITCH_PENDING:
            raise InvalidTransition("Cannot re-check while a network switch is pending")
        if self.wallet is None or self.target_network is None:
            return self._move(ReadinessState.DISCONNECTED)

        expected = get_network_profile(self.target_network.value).chain_id
        try:
            connected = self.wallet.chain_id()
        except WalletRequestError as e:
            logging.error(f"Failed to get chain ID: {e.message}")
            return self._move(ReadinessState.DISCONNECTED)

        if str(connected).lower() == expected.lower():
            return self._move(ReadinessState.READY)
        return self._move(ReadinessState.WRONG_NETWORK)

    def request_switch(self) -> ReadinessState:
        """
        Ask the wallet to switch to the target network.

        If the wallet does not know the chain, the chain is added and the
        switch retried once.
        """
        if self.state is not ReadinessState.WRONG_NETWORK:
            raise InvalidTransition(f"Cannot request a network switch from state {self.state.value}")

        profile = get_network_profile(self.target_network.value)
        self._move(ReadinessState.SWITCH_PENDING)

        try:
            self.wallet.switch_chain(profile.chain_id)
        except WalletRequestError as e:
            if e.wallet_code != UNRECOGNIZED_CHAIN:
                logging.error(f"Failed to switch network: {e.message}")
                return self._move(ReadinessState.WRONG_NETWORK)
            logging.info(f"Wallet does not know {profile.chain_name}; adding it")
            try:
                self.wallet.add_chain(profile)
                self.wallet.switch_chain(profile.chain_id)
            except WalletRequestError as add_error:
                logging.error(f"Failed to add network {profile.chain_name}: {add_error.message}")
                return self._move(ReadinessState.WRONG_NETWORK)

        return self._move(ReadinessState.READY)

    def require_ready(self, network: Optional[Network] = None) -> None:
        """
        Raise ``NetworkNotReady`` unless registration may proceed for ``network``.
        """
        if self.state is not ReadinessState.READY:
            raise NetworkNotReady(f"Wallet is not ready for registration (state: {self.state.value})")
        if network is not None and Network(network) is not self.target_network:
            raise NetworkNotReady(
                f"Readiness was evaluated for {self.target_network.value}, not {Network(network).value}"
            )


class StaticWallet:
    """
    Wallet stand-in with a fixed chain id, for the CLI and tests.

    ``known_chains`` lists chain ids the wallet can switch to without adding
    them first; ``decline`` makes every switch fail as if the user refused.
    """

    def __init__(self, chain_id: str, known_chains: Optional[List[str]] = None, decline: bool = False) -> None:
        self._chain_id = chain_id
        self.known_chains = set(known_chains or [chain_id])
        self.decline = decline
        self.requests: List[str] = []

    def chain_id(self) -> str:
        self.requests.append("eth_chainId")
        return self._chain_id

    def switch_chain(self, chain_id: str) -> None:
        self.requests.append("wallet_switchEthereumChain")
        if self.decline:
            raise WalletRequestError(4001, "User rejected the request.")
        if chain_id not in self.known_chains:
            raise WalletRequestError(UNRECOGNIZED_CHAIN, f"Unrecognized chain ID {chain_id}")
        self._chain_id = chain_id

    def add_chain(self, profile: NetworkProfile) -> None:
        self.requests.append("wallet_addEthereumChain")
        self.known_chains.add(profile.chain_id)
