"""Tests for loading account snapshots from raw documents."""

from decimal import Decimal

import pytest

from perp_risk.exceptions import SnapshotFormatError
from perp_risk.models import OrderSide
from perp_risk.snapshot import load_snapshot, parse_order, parse_position, parse_symbol_params


@pytest.fixture
def document() -> dict:
    """One ETH position, two ETH orders and ETH risk parameters."""
    return {
        "USDCHolding": 1000,
        "nonUSDCHolding": [{"holding": 1, "markPrice": 2000, "discount": 0.5}],
        "positions": [
            {
                "symbol": "PERP_ETH_USDC",
                "position_qty": 1,
                "average_open_price": 1800,
                "mark_price": 1990,
                "cost_position": 1800,
                "last_sum_unitary_funding": 10,
                "sum_unitary_funding": 12,
                "timestamp": 1700000000000,
            }
        ],
        "orders": [
            {"symbol": "PERP_ETH_USDC", "side": "buy", "quantity": 0.5, "price": 1900},
            {
                "symbol": "PERP_ETH_USDC",
                "side": "SELL",
                "quantity": 1,
                "executed": 0.25,
                "reduce_only": True,
            },
        ],
        "markPrices": {"PERP_ETH_USDC": 2000},
        "symbolInfo": {
            "PERP_ETH_USDC": {
                "base_imr": 0.1,
                "base_mmr": 0.05,
                "max_leverage": 10,
                "base_max_qty": 100,
                "taker_fee_rate": 0.0006,
            }
        },
        "IMR_Factors": {"PERP_ETH_USDC": 0.00001},
        "maxLeverage": 20,
    }


@pytest.fixture
def position_raw() -> dict:
    """Minimal valid position record."""
    return {
        "symbol": "PERP_ETH_USDC",
        "position_qty": 1,
        "average_open_price": 1800,
        "mark_price": 2000,
    }


class TestLoadSnapshot:
    """Test load_snapshot on a well-formed document."""

    def test_holdings(self, document: dict) -> None:
        """USDC and non-USDC holdings are read with their discount."""
        snapshot = load_snapshot(document)
        assert snapshot.holding.usdc == Decimal("1000")
        asset = snapshot.holding.non_usdc[0]
        assert asset.mark_price == Decimal("2000")
        assert asset.discount == Decimal("0.5")

    def test_positions(self, document: dict) -> None:
        """Position fields are converted and optional ones default."""
        position = load_snapshot(document).positions[0]
        assert position.position_qty == Decimal("1")
        assert position.sum_unitary_funding == Decimal("12")
        assert position.timestamp == 1700000000000
        assert position.est_liq_price is None

    def test_orders(self, document: dict) -> None:
        """Order sides are case-insensitive and executed quantity is kept."""
        buy, sell = load_snapshot(document).orders
        assert buy.side == OrderSide.BUY
        assert buy.price == Decimal("1900")
        assert sell.reduce_only is True
        assert sell.open_qty == Decimal("0.75")

    def test_floats_keep_printed_value(self, document: dict) -> None:
        """JSON floats convert through str(), so 0.1 stays 0.1."""
        params = load_snapshot(document).symbol_info["PERP_ETH_USDC"]
        assert params.base_imr == Decimal("0.1")
        assert params.taker_fee_rate == Decimal("0.0006")

    def test_imr_factor_from_top_level_map(self, document: dict) -> None:
        """IMR_Factors supplies the factor when symbolInfo omits it."""
        snapshot = load_snapshot(document)
        assert snapshot.symbol_info["PERP_ETH_USDC"].imr_factor == Decimal("0.00001")
        assert snapshot.imr_factors == {"PERP_ETH_USDC": Decimal("0.00001")}

    def test_default_power(self, document: dict) -> None:
        """The IMR exponent defaults to 1 unless the caller overrides it."""
        assert load_snapshot(document).symbol_info["PERP_ETH_USDC"].imr_factor_power == 1
        snapshot = load_snapshot(document, default_imr_factor_power=Decimal("0.8"))
        assert snapshot.symbol_info["PERP_ETH_USDC"].imr_factor_power == Decimal("0.8")

    def test_max_leverage(self, document: dict) -> None:
        """maxLeverage is read, falling back to 10."""
        assert load_snapshot(document).max_leverage == Decimal("20")
        del document["maxLeverage"]
        assert load_snapshot(document).max_leverage == Decimal("10")

    def test_minimal_document(self) -> None:
        """Only USDCHolding is required."""
        snapshot = load_snapshot({"USDCHolding": "250.5"})
        assert snapshot.holding.usdc == Decimal("250.5")
        assert snapshot.positions == ()
        assert snapshot.mark_prices == {}


class TestMalformedSnapshot:
    """Test that malformed documents raise SnapshotFormatError only."""

    def test_missing_usdc_holding(self, document: dict) -> None:
        """A missing required field is rejected."""
        del document["USDCHolding"]
        with pytest.raises(SnapshotFormatError):
            load_snapshot(document)

    @pytest.mark.parametrize("price", ["abc", None, [2000], True])
    def test_bad_mark_price(self, document: dict, price: object) -> None:
        """Every markPrices value must be a number."""
        document["markPrices"] = {"PERP_ETH_USDC": price}
        with pytest.raises(SnapshotFormatError):
            load_snapshot(document)

    @pytest.mark.parametrize("factor", ["n/a", None, {"value": 1}])
    def test_bad_imr_factor(self, document: dict, factor: object) -> None:
        """Every IMR_Factors value must be a number."""
        document["IMR_Factors"] = {"PERP_ETH_USDC": factor}
        with pytest.raises(SnapshotFormatError):
            load_snapshot(document)

    def test_non_object_document(self) -> None:
        """A JSON array at the top level is rejected."""
        with pytest.raises(SnapshotFormatError):
            load_snapshot([{"USDCHolding": 1}])


class TestParsers:
    """Test the record parsers on individual fields."""

    def test_position_missing_field(self) -> None:
        """A position without average_open_price is rejected."""
        with pytest.raises(SnapshotFormatError):
            parse_position({"symbol": "PERP_ETH_USDC", "position_qty": 1})

    def test_non_numeric_field(self, position_raw: dict) -> None:
        """A non-numeric quantity is rejected."""
        position_raw["position_qty"] = "lots"
        with pytest.raises(SnapshotFormatError):
            parse_position(position_raw)

    @pytest.mark.parametrize("timestamp", ["abc", "1.5e3", [1], True])
    def test_bad_timestamp(self, position_raw: dict, timestamp: object) -> None:
        """A timestamp that is not an integer is rejected."""
        position_raw["timestamp"] = timestamp
        with pytest.raises(SnapshotFormatError):
            parse_position(position_raw)

    def test_string_timestamp(self, position_raw: dict) -> None:
        """Integer timestamps sent as strings are accepted."""
        position_raw["timestamp"] = "1700000000000"
        assert parse_position(position_raw).timestamp == 1700000000000

    def test_unknown_order_side(self) -> None:
        """A side other than BUY/SELL is rejected."""
        with pytest.raises(SnapshotFormatError):
            parse_order({"symbol": "PERP_ETH_USDC", "side": "HOLD", "quantity": 1})

    @pytest.mark.parametrize("flag", [True, False])
    def test_reduce_only_boolean(self, flag: bool) -> None:
        """JSON booleans are taken as-is."""
        order = parse_order(
            {"symbol": "PERP_ETH_USDC", "side": "SELL", "quantity": 1, "reduce_only": flag}
        )
        assert order.reduce_only is flag

    def test_reduce_only_null_defaults_false(self) -> None:
        """A null reduce_only means an ordinary order."""
        order = parse_order(
            {"symbol": "PERP_ETH_USDC", "side": "SELL", "quantity": 1, "reduce_only": None}
        )
        assert order.reduce_only is False

    @pytest.mark.parametrize("flag", ["false", "true", 0, 1])
    def test_reduce_only_non_boolean(self, flag: object) -> None:
        """Strings and numbers are not silently coerced to a flag."""
        with pytest.raises(SnapshotFormatError):
            parse_order(
                {"symbol": "PERP_ETH_USDC", "side": "SELL", "quantity": 1, "reduce_only": flag}
            )

    def test_symbol_params_camel_case(self) -> None:
        """camelCase and lower-case parameter names are both accepted."""
        params = parse_symbol_params(
            "PERP_BTC_USDC",
            {
                "baseIMR": 0.05,
                "baseMMR": 0.025,
                "imr_factor": 0.000001,
                "maxLeverage": 20,
                "baseMaxQty": 10,
                "IMR_factor_power": 0.8,
            },
        )
        assert params.base_mmr == Decimal("0.025")
        assert params.imr_factor == Decimal("0.000001")
        assert params.imr_factor_power == Decimal("0.8")
        assert params.taker_fee_rate == Decimal("0")
