"""Currency coefficient configuration service."""
import logging
import threading
from decimal import Decimal
from pathlib import Path
from typing import Union

from dotenv import dotenv_values, set_key

from storefront.pricing import parse_coefficient

logger = logging.getLogger(__name__)

COEFFICIENT_KEY = "EURO_COEFFICIENT"


class CurrencyService:
    """
    Holds the display currency coefficient for the process.

    The value is read from a ``KEY=VALUE`` file on construction and on
    ``reload()``. ``update()`` validates a new value, rewrites the file and
    swaps the in-memory value. Readers never touch the file.
    """

    def __init__(self, config_path: Union[str, Path], default: Union[str, Decimal] = "1.00"):
        """
        Initialize currency service.

        Args:
            config_path: Path of the currency configuration file
            default: Coefficient used when the file has no value
        """
        self.config_path = Path(config_path)
        self.default = parse_coefficient(default)
        self._lock = threading.Lock()
        self._coefficient = self.default
        self.reload()

    @property
    def coefficient(self) -> Decimal:
        return self._coefficient

    def reload(self) -> Decimal:
        """Re-read the coefficient from the configuration file."""
        raw = None
        if self.config_path.exists():
            raw = dotenv_values(self.config_path).get(COEFFICIENT_KEY)

        if raw is None:
            logger.warning("Currency coefficient not configured, using default", extra={
                "config_path": str(self.config_path),
                "coefficient": str(self.default)
            })
            value = self.default
        else:
            value = parse_coefficient(raw)

        with self._lock:
            self._coefficient = value

        logger.info("Currency coefficient loaded", extra={
            "config_path": str(self.config_path),
            "coefficient": str(value)
        })
        return value

    def update(self, value: Union[str, Decimal, float]) -> Decimal:
        """
        Persist and apply a new coefficient.

        Raises:
            InvalidPrice: If the value is not a positive number
        """
        coefficient = parse_coefficient(value)

        with self._lock:
            self.config_path.touch(exist_ok=True)
            set_key(str(self.config_path), COEFFICIENT_KEY, str(coefficient), quote_mode="never")
            previous = self._coefficient
            self._coefficient = coefficient

        logger.info("Currency coefficient updated", extra={
            "previous": str(previous),
            "coefficient": str(coefficient)
        })
        return coefficient
