"""Shared fixtures: a scripted completion client and a small registry of stub tools."""

import asyncio
import hashlib
import json
from typing import (
    Any,
    List,
    Sequence,
)

import bech32
import pytest
from nacl.signing import SigningKey

from sage_agent.agent.llm_client import (
    BaseLLMClient,
    ChatMessage,
)
from sage_agent.core.context import CallerContext
from sage_agent.tools import (
    ToolRegistry,
    tool_result,
)

SEED = bytes(range(32))
PRIVATE_KEY = bech32.bech32_encode("suiprivkey", bech32.convertbits(b"\x00" + SEED, 8, 5))
WALLET = "0x" + hashlib.blake2b(
    b"\x00" + SigningKey(SEED).verify_key.encode(), digest_size=32
).hexdigest()


class ScriptedLLM(BaseLLMClient):
    """Returns canned replies in order and records every request."""

    def __init__(self, *replies: Any) -> None:
        super().__init__(model="scripted")
        self.replies = list(replies)
        self.calls: List[List[ChatMessage]] = []

    async def chat(self, messages: Sequence[ChatMessage]) -> str:
        self.calls.append(list(messages))
        if not self.replies:
            raise AssertionError("unexpected completion request")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if not isinstance(reply, str):
            reply = json.dumps(reply)
        return reply


def plan(subquery: str, tools: List[str] | None = None, args: List[Any] | None = None, **extra):
    """Build one selector entry in the wire format the prompt asks for."""
    entry = {
        "subquery": subquery,
        "success": tools is None and not extra.get("needs_additional_info"),
        "selected_tools": tools,
        "response": None,
        "needs_additional_info": False,
        "additional_info_required": None,
        "tool_arguments": args,
    }
    entry.update(extra)
    return entry


def answer(query: str, response: Any = "done", status: str = "success") -> List[dict]:
    return [
        {"reasoning": "r", "response": response, "status": status, "query": query, "errors": []}
    ]


@pytest.fixture
def events() -> List[tuple]:
    return []


@pytest.fixture
def registry(events: List[tuple]) -> ToolRegistry:
    reg = ToolRegistry()

    @reg.register_tool(
        "get_coin_price",
        "Current price of a coin",
        [{"name": "coin_type", "type": "string", "description": "Coin type", "required": True}],
    )
    async def get_coin_price(coin_type):
        events.append(("run", "get_coin_price", coin_type))
        return tool_result({"coin": coin_type, "price": 1.5}, f"Get price for {coin_type}")

    @reg.register_tool(
        "stake_sui",
        "Stake SUI and receive afSUI",
        [
            {"name": "amount", "type": "number", "description": "Amount in MIST"},
            {"name": "owner_address", "type": "string", "description": "Staker"},
        ],
    )
    async def stake_sui(amount, owner_address):
        events.append(("run", "stake_sui", amount, owner_address))
        await asyncio.sleep(0)
        return tool_result({"staked": amount}, "stake")

    @reg.register_tool(
        "deposit_liquidity",
        "Deposit coins into a lending pool",
        [
            {"name": "owner_id", "type": "string", "description": "Depositor"},
            {"name": "coin_type", "type": "string", "description": "Coin type"},
            {"name": "value", "type": "number", "description": "Amount"},
        ],
    )
    async def deposit_liquidity(owner_id, coin_type, value):
        events.append(("run", "deposit_liquidity", owner_id, coin_type, value))
        return tool_result({"deposited": value, "coin": coin_type}, "deposit")

    @reg.register_tool(
        "transfer_sui",
        "Transfer SUI",
        [
            {"name": "recipient_address", "type": "string", "description": "Recipient"},
            {"name": "amount", "type": "string", "description": "Amount in MIST"},
            {"name": "network", "type": "string", "description": "Network", "required": False},
        ],
    )
    def transfer_sui(recipient_address, amount, network="MAINNET"):
        events.append(("run", "transfer_sui", recipient_address, amount, network))
        return tool_result({"to": recipient_address, "network": network}, "transfer")

    @reg.register_tool(
        "execute_transaction",
        "Execute a signed transaction",
        [
            {"name": "transaction", "type": "string", "description": "Serialized transaction"},
            {"name": "private_key", "type": "string", "description": "Signing key"},
        ],
    )
    async def execute_transaction(transaction, private_key):
        events.append(("run", "execute_transaction", transaction, private_key))
        return tool_result({"digest": "D1G3ST"}, "execute")

    @reg.register_tool("broken_tool", "Always fails", [])
    async def broken_tool():
        raise RuntimeError("node unavailable")

    return reg


@pytest.fixture
def caller() -> CallerContext:
    return CallerContext(address=WALLET, private_key=PRIVATE_KEY)
