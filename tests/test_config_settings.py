from swapquote.config import Settings


def test_defaults(monkeypatch):
    """Defaults give a lenient engine with every aggregator enabled."""

    monkeypatch.delenv("DEFAULT_CHAIN_ID", raising=False)
    monkeypatch.delenv("CHAIN_ID", raising=False)

    settings = Settings()

    assert settings.default_chain_id == 1
    assert settings.default_slippage_bps == 50
    assert settings.strict_quotes is False
    assert settings.source_allow_list is None
    assert all(settings.aggregator_toggles.values())


def test_legacy_chain_id(monkeypatch):
    """The bare CHAIN_ID variable applies when DEFAULT_CHAIN_ID is unset."""

    monkeypatch.delenv("DEFAULT_CHAIN_ID", raising=False)
    monkeypatch.setenv("CHAIN_ID", "136638")

    settings = Settings()

    assert settings.default_chain_id == 136638


def test_default_chain_id_wins(monkeypatch):
    monkeypatch.setenv("DEFAULT_CHAIN_ID", "56")
    monkeypatch.setenv("CHAIN_ID", "136638")

    settings = Settings()

    assert settings.default_chain_id == 56


def test_strict_quotes_env(monkeypatch):
    monkeypatch.setenv("STRICT_QUOTES", "true")

    assert Settings().strict_quotes is True


def test_enabled_sources_allow_list(monkeypatch):
    monkeypatch.setenv("ENABLED_SOURCES", '["Uniswap-V2", " 0x "]')

    settings = Settings()

    assert settings.source_allow_list == {"uniswap-v2", "0x"}


def test_aggregator_toggle_env(monkeypatch):
    monkeypatch.setenv("ENABLE_KYBERSWAP", "false")

    assert Settings().aggregator_toggles["kyberswap"] is False


def test_log_format_env(monkeypatch):
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    assert Settings().log_format == "auto"
    assert Settings().quote_log_level is None

    monkeypatch.setenv("LOG_FORMAT", "console")
    monkeypatch.setenv("QUOTE_LOG_LEVEL", "debug")

    settings = Settings()

    assert settings.log_format == "console"
    assert settings.quote_log_level == "debug"
