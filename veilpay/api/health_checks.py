#!/usr/bin/env python3
"""
Health check helpers for the API
"""
import time
from datetime import datetime, timezone
from typing import Any, Dict

from veilpay.api.logging_config import get_logger
from veilpay.errors import RpcError
from veilpay.ledger.rpc import SolanaRpcClient

logger = get_logger("health")

# Track API startup time
API_START_TIME = time.time()


async def check_rpc_health(rpc: SolanaRpcClient) -> Dict[str, Any]:
    """
    Check Solana RPC connectivity

    Args:
        rpc: Client pointed at the cluster used for transfers

    Returns:
        dict with status, response_time_ms, and error (if any)
    """
    start = time.time()
    try:
        await rpc.get_health()
    except RpcError as e:
        logger.error(f"RPC health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e),
            "rpc_url": rpc.rpc_url
        }

    return {
        "status": "healthy",
        "response_time_ms": round((time.time() - start) * 1000, 2),
        "rpc_url": rpc.rpc_url
    }


async def health_report(rpc: SolanaRpcClient, program_id: str) -> Dict[str, Any]:
    """Overall status plus per-dependency details"""
    rpc_status = await check_rpc_health(rpc)
    return {
        "status": rpc_status["status"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime_seconds": round(time.time() - API_START_TIME, 1),
        "program_id": program_id,
        "checks": {"rpc": rpc_status},
    }
