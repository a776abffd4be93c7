from pathlib import Path

from config.distress import DistressEngine, match_distress


def test_bundled_config_matches_keywords():
    assert match_distress("This is an emergency").category == "crisis"
    assert match_distress("I can't take this anymore").category == "overwhelm"
    assert not match_distress("Things are fine").distressed


def test_precedence_picks_crisis():
    engine = DistressEngine()
    finding = engine.analyze("I'm overwhelmed and it's a crisis")
    assert finding.category == "crisis"
    assert finding.severity == "critical"
    assert all(hit.category == "crisis" for hit in finding.hits)


def test_custom_yaml_and_reload(tmp_path: Path):
    path = tmp_path / "distress.yaml"
    path.write_text(
        "version: 1\nprecedence: [burnout]\ncategories:\n  burnout:\n    severity: high\n    patterns: ['burn(ed|t) out']\n",
        encoding="utf-8",
    )
    engine = DistressEngine(str(path))
    assert engine.analyze("I am burnt out").category == "burnout"
    assert engine.analyze("urgent").category is None


def test_missing_file_uses_builtin_rules(tmp_path: Path):
    engine = DistressEngine(str(tmp_path / "absent.yaml"))
    assert engine.analyze("  I am   OVERWHELMED ").category == "overwhelm"
