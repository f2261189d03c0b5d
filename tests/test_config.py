from cycle_api.config import Settings


def test_settings_read_environment(monkeypatch):
    for name in ("VAPID_PUBLIC_KEY", "VAPID_PRIVATE_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SCHEDULER_INTERVAL_MINUTES", "5")
    monkeypatch.setenv("NEXT_PUBLIC_VAPID_PUBLIC_KEY", "BFromEnv")
    monkeypatch.setenv("SOME_UNRELATED_VAR", "x")
    s = Settings(_env_file=None)
    assert s.SCHEDULER_INTERVAL_MINUTES == 5
    assert s.vapid_public_key == "BFromEnv"
    assert s.vapid_configured is False


def test_settings_env_names_are_case_sensitive(monkeypatch):
    monkeypatch.delenv("CRON_SECRET", raising=False)
    monkeypatch.setenv("cron_secret", "lower")
    assert Settings(_env_file=None).CRON_SECRET is None
