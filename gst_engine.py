# gst_engine.py

import os
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

# —————————————————————————————————————————————————————
# Logging Configuration
logger = logging.getLogger("GSTEngine")
logger.setLevel(logging.INFO)
handler = logging.FileHandler(os.environ.get("GST_ENGINE_LOG", "gst_engine.log"))
formatter = logging.Formatter('%(asctime)s %(levelname)s:%(name)s:%(message)s')
handler.setFormatter(formatter)
logger.addHandler(handler)

# —————————————————————————————————————————————————————
# Configuration

DEFAULT_HOME_STATE = "maharashtra"
DEFAULT_INTRA_RATE = 18.0   # split 9 + 9 across CGST/SGST
DEFAULT_INTER_RATE = 18.0   # IGST

CONFIG_PATH = os.path.join(os.path.dirname(__file__), "gst_config.json")


def normalize_state(state: Optional[str]) -> Optional[str]:
    """Trim and lower-case a jurisdiction name; None stays None."""
    if state is None:
        return None
    return state.strip().lower()


@dataclass(frozen=True)
class GSTRates:
    """
    GST configuration for one deployment.

    ``intra_rate`` is the total intra-state rate, always split into two
    equal CGST/SGST halves. ``inter_rate`` is charged as IGST alone.
    """
    home_state: str = DEFAULT_HOME_STATE
    intra_rate: float = DEFAULT_INTRA_RATE
    inter_rate: float = DEFAULT_INTER_RATE

    def __post_init__(self):
        if not isinstance(self.home_state, str) or not self.home_state.strip():
            raise ValueError(f"Invalid home state: {self.home_state!r}")
        # frozen, so go through object.__setattr__
        object.__setattr__(self, "home_state", normalize_state(self.home_state))
        object.__setattr__(self, "intra_rate", float(self.intra_rate))
        object.__setattr__(self, "inter_rate", float(self.inter_rate))

    @property
    def half_intra_rate(self) -> float:
        return self.intra_rate / 2


def load_gst_rates(path: Optional[str] = None) -> GSTRates:
    """
    Load GST rates from JSON: ``path``, then ``GST_CONFIG_PATH``, then
    gst_config.json beside this module. Falls back to the reference rates
    when the file is missing, unreadable or invalid.
    """
    requested = path or os.environ.get("GST_CONFIG_PATH")
    path = requested or CONFIG_PATH
    if not os.path.exists(path):
        if requested:
            logger.warning(f"GST config not found at {path}, using default rates")
        else:
            # installed copies do not ship gst_config.json
            logger.info("No GST config file, using default rates")
        return GSTRates()
    try:
        with open(path) as f:
            data = json.load(f)
        rates = GSTRates(
            home_state=data.get("home_state", DEFAULT_HOME_STATE),
            intra_rate=data.get("intra_rate", DEFAULT_INTRA_RATE),
            inter_rate=data.get("inter_rate", DEFAULT_INTER_RATE),
        )
    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.exception(f"Failed to load GST config from {path}: {e}")
        return GSTRates()
    logger.info(f"Loaded GST config from {path}: {rates}")
    return rates

# —————————————————————————————————————————————————————
# Regime & Result Types


class GSTRegime(str, Enum):
    """Which GST family applies to a transaction."""

    INTRA = "INTRA"  # CGST + SGST
    INTER = "INTER"  # IGST

    @classmethod
    def parse(cls, value) -> "GSTRegime":
        """Accept a regime or its name in any case; raises ValueError otherwise."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Invalid GST regime: {value!r}")
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Invalid GST regime: {value!r}") from None


@dataclass(frozen=True)
class GSTCalculation:
    regime: GSTRegime
    cgst_percent: float = 0.0
    sgst_percent: float = 0.0
    igst_percent: float = 0.0
    cgst_amount: float = 0.0
    sgst_amount: float = 0.0
    igst_amount: float = 0.0
    total_gst_amount: float = field(init=False)

    def __post_init__(self):
        object.__setattr__(
            self,
            "total_gst_amount",
            self.cgst_amount + self.sgst_amount + self.igst_amount,
        )

    def to_dict(self) -> dict:
        return {
            "regime": self.regime.value,
            "cgstPercent": self.cgst_percent,
            "sgstPercent": self.sgst_percent,
            "igstPercent": self.igst_percent,
            "cgstAmount": self.cgst_amount,
            "sgstAmount": self.sgst_amount,
            "igstAmount": self.igst_amount,
            "totalGstAmount": self.total_gst_amount,
        }

# —————————————————————————————————————————————————————
# GST Engine


class GSTEngine:
    """
    Classifies a transaction as intra- or inter-state and calculates
    CGST/SGST or IGST for it.
    """
    def __init__(self, rates: Optional[GSTRates] = None):
        self.rates = rates or GSTRates()

    def determine_regime(self,
                         billing_state: Optional[str],
                         shipping_state: Optional[str]) -> GSTRegime:
        billing = normalize_state(billing_state)
        shipping = normalize_state(shipping_state)
        home = self.rates.home_state
        if billing == home and shipping == home:
            return GSTRegime.INTRA
        return GSTRegime.INTER

    def percentages(self, regime: GSTRegime) -> Tuple[float, float, float]:
        """(cgst, sgst, igst) percentages to write onto a line for ``regime``."""
        if regime == GSTRegime.INTRA:
            half = self.rates.half_intra_rate
            return half, half, 0.0
        return 0.0, 0.0, self.rates.inter_rate

    def calculate(self, taxable_amount: float, regime: GSTRegime) -> GSTCalculation:
        cgst_pct, sgst_pct, igst_pct = self.percentages(regime)
        if regime == GSTRegime.INTRA:
            return GSTCalculation(
                regime=GSTRegime.INTRA,
                cgst_percent=cgst_pct,
                sgst_percent=sgst_pct,
                cgst_amount=taxable_amount * cgst_pct / 100,
                sgst_amount=taxable_amount * sgst_pct / 100,
            )
        return GSTCalculation(
            regime=GSTRegime.INTER,
            igst_percent=igst_pct,
            igst_amount=taxable_amount * igst_pct / 100,
        )

# —————————————————————————————————————————————————————
# Module-level helpers


def determine_regime(billing_state: Optional[str],
                     shipping_state: Optional[str],
                     rates: Optional[GSTRates] = None) -> GSTRegime:
    return GSTEngine(rates).determine_regime(billing_state, shipping_state)


def calculate(taxable_amount: float,
              regime: GSTRegime,
              rates: Optional[GSTRates] = None) -> GSTCalculation:
    return GSTEngine(rates).calculate(taxable_amount, regime)
