from __future__ import annotations

import json
from typing import Any, Dict


DISPATCHABLE_FUNCTIONS = [
    "deposit",
    "withdraw",
    "borrow",
    "repay",
    "stake",
    "unstake",
    "balanceof",
    "getpoolinformation",
    "swap",
    "transfer",
]

OPERATION_SYSTEM_PROMPT = (
    "You are the IntentFi planner for a cross-chain DeFi intent system. "
    "Translate the user's financial intent into dispatchable operations. "
    "Output ONLY valid JSON, no markdown or commentary, with this exact shape: "
    '{"steps": [{"chain": string, "token": string, "chainId": int, "amount": string, '
    '"function": string, "poolId": int}]}. '
    "function must be one of the lower-case names in allowed_functions. "
    "amount is a human-readable decimal string (do NOT use base units). "
    "poolId is only meaningful for stake/unstake; use 4 when the user gives none. "
    "For swap also include fromToken and toToken; for transfer include recipient. "
    "Use current_chain_id unless the user names another chain, and only use chain ids "
    "and tokens listed in networks. "
    "If a required value is missing, leave it as an empty string rather than guessing."
)

STEPS_SYSTEM_PROMPT = (
    "You are an expert AI for a cross-chain DeFi intent system. Given a financial intent "
    "in natural language, return a structured JSON object with the execution steps. "
    "The response must be ONLY a valid JSON object with no other text, and have this exact format: "
    '{"steps": [{"description": "Step description", "chain": "Chain name or \'Multiple\' or \'N/A\'"}]}. '
    "Make your responses practical and realistic. For execution steps, consider: "
    "1. Checking balances, rates, or routes first "
    "2. Any bridging between chains "
    "3. Swapping tokens if needed "
    "4. Depositing into protocols or setting up automation "
    "5. Any monitoring or follow-up steps"
)


def build_operation_prompt(planner_input: Dict[str, Any]) -> Dict[str, str]:
    user_payload = {
        "intent": planner_input.get("intent"),
        "current_chain_id": planner_input.get("chain_id"),
        "networks": planner_input.get("networks"),
        "allowed_functions": DISPATCHABLE_FUNCTIONS,
    }
    examples = [
        {
            "intent": "Deposit 10 USDC on Celo",
            "output": {
                "steps": [
                    {
                        "chain": "Celo",
                        "token": "USDC",
                        "chainId": 44787,
                        "amount": "10",
                        "function": "deposit",
                        "poolId": 4,
                    }
                ]
            },
        },
        {
            "intent": "Stake 5 RBTC in pool 2 on Rootstock",
            "output": {
                "steps": [
                    {
                        "chain": "Rootstock",
                        "token": "RBTC",
                        "chainId": 31,
                        "amount": "5",
                        "function": "stake",
                        "poolId": 2,
                    }
                ]
            },
        },
    ]
    return {
        "system": OPERATION_SYSTEM_PROMPT,
        "user": json.dumps({"input": user_payload, "examples": examples}, ensure_ascii=True),
    }


def build_steps_prompt(planner_input: Dict[str, Any]) -> Dict[str, str]:
    return {
        "system": STEPS_SYSTEM_PROMPT,
        "user": f'Intent: "{planner_input.get("intent") or ""}"',
    }
