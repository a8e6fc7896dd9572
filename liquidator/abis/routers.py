# /liquidator/abis/routers.py
V2_ROUTER_ABI = [
    {"inputs": [{"internalType": "uint256", "name": "amountIn", "type": "uint256"}, {"internalType": "address[]", "name": "path", "type": "address[]"}], "name": "getAmountsOut", "outputs": [{"internalType": "uint256[]", "name": "amounts", "type": "uint256[]"}], "stateMutability": "view", "type": "function"},
]

V3_QUOTER_ABI = [
    {"inputs": [{"internalType": "bytes", "name": "path", "type": "bytes"}, {"internalType": "uint256", "name": "amountIn", "type": "uint256"}], "name": "quoteExactInput", "outputs": [{"internalType": "uint256", "name": "amountOut", "type": "uint256"}, {"internalType": "uint160[]", "name": "sqrtPriceX96AfterList", "type": "uint160[]"}, {"internalType": "uint32[]", "name": "initializedTicksCrossedList", "type": "uint32[]"}, {"internalType": "uint256", "name": "gasEstimate", "type": "uint256"}], "stateMutability": "nonpayable", "type": "function"},
]

AGGREGATOR_ROUTER_ABI = [
    {"inputs": [{"internalType": "uint256", "name": "_amountIn", "type": "uint256"}, {"internalType": "address", "name": "_tokenIn", "type": "address"}, {"internalType": "address", "name": "_tokenOut", "type": "address"}, {"internalType": "uint256", "name": "_maxSteps", "type": "uint256"}], "name": "findBestPath", "outputs": [{"components": [{"internalType": "uint256[]", "name": "amounts", "type": "uint256[]"}, {"internalType": "address[]", "name": "adapters", "type": "address[]"}, {"internalType": "address[]", "name": "path", "type": "address[]"}, {"internalType": "uint256", "name": "gasEstimate", "type": "uint256"}], "internalType": "struct FormattedOffer", "name": "", "type": "tuple"}], "stateMutability": "view", "type": "function"},
]
