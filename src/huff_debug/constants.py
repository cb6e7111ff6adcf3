"""
Centralized constants for huff-debug configuration.

This module provides single-source-of-truth defaults for values used by the
command builder, the cache/state store and the debug pipeline.

Environment variable overrides:
- HUFF_DEBUG_COMPILER: Compiler binary (default: huffc)
- HUFF_DEBUG_ENGINE: EVM execution engine binary (default: hevm)
- HUFF_DEBUG_CONTRACT_ADDRESS: Address the contract is deployed to
- HUFF_DEBUG_CALLER: Caller address used for create and debug calls
"""

from __future__ import annotations

import os

# External tools
COMPILER_BIN = os.environ.get("HUFF_DEBUG_COMPILER", "huffc")
ENGINE_BIN = os.environ.get("HUFF_DEBUG_ENGINE", "hevm")

COMPILER_INSTALL_URL = "https://github.com/huff-language/huff-rs"
ENGINE_INSTALL_URL = "https://github.com/dapphub/dapptools#installation"

# =============================================================================
# Deploy Defaults
# =============================================================================

DEFAULT_CONTRACT_ADDRESS = os.environ.get(
    "HUFF_DEBUG_CONTRACT_ADDRESS",
    "0x00a329c0648769A73afAc7F9381E08FB43dBEA72",
)
DEFAULT_CALLER = os.environ.get(
    "HUFF_DEBUG_CALLER",
    "0x00a329c0648769A73afAc7F9381E08FB43dBEA72",
)

# Maximal gas allowance handed to every hevm invocation
MAX_GAS = "0xffffffff"

# =============================================================================
# Cache Layout (relative to the workspace root)
# =============================================================================

CACHE_DIRNAME = "cache"
DEFAULT_STATE_PATH = "cache/huff_debug_hevm_state"
DEFAULT_TEMP_COMMAND_FILENAME = "cache/hevmtemp"
DEFAULT_TEMP_SOURCE_FILENAME = "cache/temp.huff"
LOGS_DIRNAME = "logs"

# Identity used for the initial commit of the state repository
STATE_REPO_AUTHOR_NAME = "huff-debug"
STATE_REPO_AUTHOR_EMAIL = "huff-debug@localhost"

# =============================================================================
# Panel Server
# =============================================================================

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8787
