import asyncio
import dataclasses
import json
import logging
import sys

import pytest

from cookfi.trader.cli import _with_dry_run
from cookfi.trader.collectors.portfolio import BirdeyePortfolio, MoralisPortfolio
from cookfi.trader.config import (
    APIKeys,
    Config,
    ConfigError,
    DiscoveryConfig,
    ExecutionConfig,
    TwitterConfig,
    WalletConfig,
)
from cookfi.trader.plugin import CookfiPlugin, build_portfolio, build_workflow
from cookfi.trader.utils.logger import JSONFormatter, get_logger


def _dry_run_config(**overrides):
    cfg = Config(
        api_keys=APIKeys(
            cookie_api_key="cookie",
            moralis_api_key="moralis",
            birdeye_api_key="birdeye",
            openai_api_key="openai",
        ),
        wallet=WalletConfig(private_key="", public_key="Wallet111"),
        execution=ExecutionConfig(dry_run=True),
        discovery=DiscoveryConfig(use_coinmarketcap=False),
        twitter=TwitterConfig(access_token="", dry_run=False),
    )
    return dataclasses.replace(cfg, **overrides)


def test_build_workflow_dry_run_has_no_wallet():
    workflow = build_workflow(_dry_run_config())

    assert workflow.executor.trading is None
    assert workflow.notifier is None
    assert workflow.discovery.coinmarketcap is None


def test_build_workflow_with_twitter_enabled():
    workflow = build_workflow(_dry_run_config(twitter=TwitterConfig(dry_run=True)))
    assert workflow.notifier is not None


def test_build_workflow_rejects_missing_keys():
    with pytest.raises(ConfigError):
        build_workflow(_dry_run_config(api_keys=APIKeys(cookie_api_key="", openai_api_key="openai")))


def test_portfolio_provider_selection():
    cfg = _dry_run_config()
    assert isinstance(build_portfolio(cfg), MoralisPortfolio)

    birdeye = dataclasses.replace(
        cfg, wallet=WalletConfig(public_key="Wallet111", portfolio_provider="birdeye")
    )
    assert isinstance(build_portfolio(birdeye), BirdeyePortfolio)


@pytest.mark.asyncio
async def test_plugin_stop_before_start_is_noop():
    plugin = CookfiPlugin(_dry_run_config())
    await plugin.stop()
    assert plugin.workflow is None


def test_cli_dry_run_flag_overrides_execution_and_twitter():
    cfg = _dry_run_config(execution=ExecutionConfig(dry_run=False))

    forced = _with_dry_run(cfg, True)

    assert forced.execution.dry_run is True
    assert forced.twitter.dry_run is True
    assert _with_dry_run(cfg, False) is cfg


def test_json_formatter_includes_extra_data():
    record = logging.LogRecord(
        name="cookfi.trader.test", level=logging.INFO, pathname=__file__, lineno=1,
        msg="Swap sent", args=(), exc_info=None,
    )
    record.data = {"token": "BONK", "slippage_pct": 3.0}

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "Swap sent"
    assert payload["level"] == "INFO"
    assert payload["data"] == {"token": "BONK", "slippage_pct": 3.0}


def test_json_formatter_serializes_models(make_token):
    record = logging.LogRecord(
        name="cookfi.trader.test", level=logging.ERROR, pathname=__file__, lineno=1,
        msg="Execution failed", args=(), exc_info=None,
    )
    record.data = {"token": make_token(balance=2.0)}

    payload = json.loads(JSONFormatter().format(record))

    assert payload["data"]["token"]["address"] == "TokenMint111"
    assert payload["data"]["token"]["balance"]["amount"] == 2.0


def test_get_logger_namespaces_names():
    assert get_logger("workflow_test").name == "cookfi.trader.workflow_test"
    assert get_logger("cookfi.trader.execution").name == "cookfi.trader.execution"


@pytest.mark.asyncio
async def test_plugin_stop_right_after_start_ends_loop():
    plugin = CookfiPlugin(_dry_run_config())

    workflow = await plugin.start()
    await plugin.stop()
    await asyncio.wait_for(workflow.wait(), timeout=1)

    assert workflow.state.value == "stopped"


def test_json_formatter_includes_traceback():
    try:
        raise ValueError("quote rejected")
    except ValueError:
        exc_info = sys.exc_info()
    record = logging.LogRecord(
        name="cookfi.trader.test", level=logging.ERROR, pathname=__file__, lineno=1,
        msg="Error in trading analysis loop", args=(), exc_info=exc_info,
    )

    payload = json.loads(JSONFormatter().format(record))

    assert payload["exception"] == "quote rejected"
    assert payload["exception_type"] == "ValueError"
    assert payload["traceback"].startswith("Traceback")
    assert "test_json_formatter_includes_traceback" in payload["traceback"]
    assert "ValueError: quote rejected" in payload["traceback"]
