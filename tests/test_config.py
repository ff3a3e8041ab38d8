from engine.config import GEMINI, OFFLINE, OPENROUTER, EngineConfig, load_config


def test_defaults_from_empty_env():
    cfg = load_config({})
    assert cfg == EngineConfig()
    assert cfg.provider == OPENROUTER
    assert cfg.timeout_seconds == 4.0
    assert cfg.max_candidates == 3
    assert cfg.seed is None


def test_openrouter_env():
    cfg = load_config(
        {
            "OPENROUTER_API_KEY": " sk-1 ",
            "SITE_URL": "https://trail.example",
            "TRAIL_MODEL": "qwen/qwen-2-7b-instruct:free",
            "TRAIL_TIMEOUT_SECONDS": "2.5",
            "TRAIL_SEED": "99",
            "TRAIL_LOG_LEVEL": "debug",
            "TRAIL_SAVE_PATH": "/tmp/x.json",
        }
    )
    assert cfg.api_key == "sk-1"
    assert cfg.site_url == "https://trail.example"
    assert cfg.default_model == "qwen/qwen-2-7b-instruct:free"
    assert cfg.timeout_seconds == 2.5
    assert cfg.seed == 99
    assert cfg.log_level == "DEBUG"
    assert cfg.save_path == "/tmp/x.json"


def test_gemini_env_and_bad_values():
    cfg = load_config({"TRAIL_PROVIDER": "Gemini", "GOOGLE_API_KEY": "g-1", "TRAIL_SEED": "abc", "TRAIL_TIMEOUT_SECONDS": "soon"})
    assert cfg.provider == GEMINI
    assert cfg.api_key == "g-1"
    assert cfg.seed is None
    assert cfg.timeout_seconds == 4.0


def test_unknown_provider_and_offline():
    assert load_config({"TRAIL_PROVIDER": "carrier-pigeon"}).provider == OPENROUTER
    assert load_config({"TRAIL_PROVIDER": "offline", "TRAIL_RANDOM_ARRESTS": "no"}) == EngineConfig(provider=OFFLINE, random_arrests=False)


def test_reads_os_environ_by_default(monkeypatch):
    monkeypatch.setenv("TRAIL_MODEL", "from-env")
    assert load_config().default_model == "from-env"
