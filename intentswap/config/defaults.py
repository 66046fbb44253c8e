"""Default token list for the Movement testnet deployment."""

from intentswap.config.schema import TokenConfig

DEFAULT_TOKENS: list[TokenConfig] = [
    TokenConfig(
        symbol="MOVE",
        type="0x1::aptos_coin::AptosCoin",
        decimals=8,
    ),
    TokenConfig(
        symbol="WETH.e",
        type="0x7eb1210794c2fdf636c5c9a5796b5122bf932458e3dd1737cf830d79954f5fdb",
        decimals=8,
    ),
    TokenConfig(
        symbol="USDC.e",
        type="0x45142fb00dde90b950183d8ac2815597892f665c254c3f42b5768bc6ae4c8489",
        decimals=6,
    ),
    TokenConfig(
        symbol="USDT.e",
        type="0x927595491037804b410c090a4c152c27af24d647863fc00b4a42904073d2d9de",
        decimals=6,
    ),
]
