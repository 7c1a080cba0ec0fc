"""
AEGIS - Portfolio Risk & Leveraged-Liquidation Analytics Engine

A layered risk toolkit for crypto portfolios designed to:
- Quantify portfolio risk (VaR, CVaR, drawdowns, concentration)
- Size positions with multiple independent methods
- Stress-test portfolios against canonical market shocks
- Estimate where leveraged positions get liquidated
- Gate trades that walk into liquidation clusters

Architecture:
    Layer 1: Statistics Kernel
    Layer 2: Risk Metrics & Position Sizing
    Layer 3: Scenario / Stress Engine
    Layer 4: Liquidation Level Estimator
    Layer 5: Liquidation-Aware Trade Gate
"""

__version__ = "1.0.0"
__codename__ = "AEGIS"

from aegis.core.engine import AegisEngine
from aegis.core.config import AegisConfig

__all__ = ["AegisEngine", "AegisConfig", "__version__", "__codename__"]
