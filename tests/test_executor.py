import pytest

from cookfi.trader.config import ExecutionConfig
from cookfi.trader.execution.executor import ExecutionService
from cookfi.trader.execution.sizing import calculate_buy_amount, passes_confidence_gate
from cookfi.trader.execution.trading import TradingService
from cookfi.trader.schemas import Recommendation


def test_buy_amount_scales_with_confidence(execution_settings):
    assert calculate_buy_amount(80, execution_settings) == pytest.approx(0.01)
    assert calculate_buy_amount(85, execution_settings) == pytest.approx(0.0325)
    assert calculate_buy_amount(90, execution_settings) == pytest.approx(0.055)
    assert calculate_buy_amount(100, execution_settings) == pytest.approx(0.1)


def test_buy_amount_is_clamped(execution_settings):
    assert calculate_buy_amount(50, execution_settings) == pytest.approx(0.01)
    assert calculate_buy_amount(150, execution_settings) == pytest.approx(0.1)


def test_buy_amount_is_monotonic(execution_settings):
    amounts = [calculate_buy_amount(c, execution_settings) for c in range(80, 101)]
    assert amounts == sorted(amounts)


def test_confidence_gate(execution_settings):
    assert passes_confidence_gate(80, execution_settings) is True
    assert passes_confidence_gate(79.9, execution_settings) is False


def test_live_mode_requires_trading_service(execution_settings):
    with pytest.raises(ValueError):
        ExecutionService(None, execution_settings)


@pytest.mark.asyncio
@pytest.mark.parametrize("recommendation", ["BUY", "SELL"])
async def test_low_confidence_never_touches_wallet(
    recommendation, fake_wallet, fast_swap_settings, execution_settings, make_token, make_decision
):
    executor = ExecutionService(TradingService(fake_wallet, fast_swap_settings), execution_settings)

    result = await executor.execute_decision(
        make_token(balance=100.0), make_decision(recommendation, confidence=79)
    )

    assert result.success is True
    assert result.action == Recommendation.HOLD
    assert result.error == "Confidence too low"
    assert fake_wallet.swaps == []


@pytest.mark.asyncio
async def test_buy_swaps_sol_into_token(
    fake_wallet, fast_swap_settings, execution_settings, make_token, make_decision, make_pair
):
    executor = ExecutionService(TradingService(fake_wallet, fast_swap_settings), execution_settings)
    pairs = [make_pair()]

    result = await executor.execute_decision(make_token(), make_decision("BUY", 85), pairs)

    assert result.success is True
    assert result.action == Recommendation.BUY
    assert result.amount == pytest.approx(0.0325)
    assert result.signature == "sig-1"
    assert result.market_data == pairs
    input_mint, output_mint, amount, bps = fake_wallet.swaps[0]
    assert (input_mint, output_mint) == ("SOL", "TokenMint111")
    assert amount == pytest.approx(0.0325)
    assert bps == 100


@pytest.mark.asyncio
async def test_sell_exits_whole_position(
    fake_wallet, fast_swap_settings, execution_settings, make_token, make_decision
):
    executor = ExecutionService(TradingService(fake_wallet, fast_swap_settings), execution_settings)

    result = await executor.execute_decision(make_token(balance=250.0), make_decision("SELL", 90))

    assert result.success is True
    assert result.action == Recommendation.SELL
    assert result.amount == 250.0
    assert fake_wallet.swaps[0][:3] == ("TokenMint111", "SOL", 250.0)


@pytest.mark.asyncio
async def test_sell_without_position_fails(
    fake_wallet, fast_swap_settings, execution_settings, make_token, make_decision
):
    executor = ExecutionService(TradingService(fake_wallet, fast_swap_settings), execution_settings)

    result = await executor.execute_decision(make_token(), make_decision("SELL", 90))

    assert result.success is False
    assert result.error == "No balance"
    assert fake_wallet.swaps == []


@pytest.mark.asyncio
async def test_hold_is_successful_noop(
    fake_wallet, fast_swap_settings, execution_settings, make_token, make_decision
):
    executor = ExecutionService(TradingService(fake_wallet, fast_swap_settings), execution_settings)

    result = await executor.execute_decision(make_token(), make_decision("HOLD", 95))

    assert result.success is True
    assert result.action == Recommendation.HOLD
    assert fake_wallet.swaps == []


@pytest.mark.asyncio
async def test_swap_failure_becomes_failed_result(
    wallet_factory, fast_swap_settings, execution_settings, make_token, make_decision
):
    wallet = wallet_factory(failures=100, error="Route not found")
    executor = ExecutionService(TradingService(wallet, fast_swap_settings), execution_settings)

    result = await executor.execute_decision(make_token(), make_decision("BUY", 95))

    assert result.success is False
    assert result.action == Recommendation.BUY
    assert "Route not found" in result.error
    assert "attempts" in result.error


@pytest.mark.asyncio
async def test_dry_run_reports_action_without_trading(make_token, make_decision):
    executor = ExecutionService(None, ExecutionConfig(dry_run=True))

    result = await executor.execute_decision(make_token(), make_decision("BUY", 90))

    assert result.success is True
    assert result.action == Recommendation.BUY
    assert result.signature is None
