"""Tests for the command-line interface."""

import json

from typer.testing import CliRunner

from codegen_enhancer.cli import app

runner = CliRunner()

ORIGINAL = """test('checkout', async ({ page }) => {
  await page.goto('https://shop.example.com/');
  await page.getByRole('button', { name: 'Add' }).click();
  await page.getByLabel('Email').fill('a@example.com');
  await expect(page.getByText('Thanks')).toBeVisible();
});
"""


def test_config_json_masks_credentials(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-live-abcdefgh")

    result = runner.invoke(app, ["config", "--json"])

    assert result.exit_code == 0
    assert '"provider": "openai"' in result.output
    assert "sk-l****" in result.output
    assert "sk-live-abcdefgh" not in result.output


def test_config_panel_reads_file(tmp_path):
    path = tmp_path / "llm.json"
    path.write_text(json.dumps({"ollama": {"model": "qwen2.5-coder"}}), encoding="utf-8")

    result = runner.invoke(app, ["config", "--config", str(path)])

    assert result.exit_code == 0
    assert "ollama (qwen2.5-coder)" in result.output


def test_config_missing_file_exits_with_error(tmp_path):
    result = runner.invoke(app, ["config", "--config", str(tmp_path / "missing.json")])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_check_script_accepts_equivalent_rewrite(tmp_path):
    original = tmp_path / "original.spec.ts"
    rewritten = tmp_path / "rewritten.spec.ts"
    original.write_text(ORIGINAL, encoding="utf-8")
    rewritten.write_text(ORIGINAL.replace("'Add'", "/add/i"), encoding="utf-8")

    result = runner.invoke(app, ["check-script", str(original), str(rewritten)])

    assert result.exit_code == 0
    assert "Rewrite accepted" in result.output


def test_check_script_rejects_dropped_assertion(tmp_path):
    original = tmp_path / "original.spec.ts"
    rewritten = tmp_path / "rewritten.spec.ts"
    original.write_text(ORIGINAL, encoding="utf-8")
    rewritten.write_text(
        "\n".join(line for line in ORIGINAL.splitlines() if "expect(" not in line),
        encoding="utf-8",
    )

    result = runner.invoke(app, ["check-script", str(original), str(rewritten)])

    assert result.exit_code == 1
    assert "Rejected" in result.output
    assert "assertions" in result.output


def test_enhance_script_missing_file(tmp_path):
    result = runner.invoke(app, ["enhance-script", str(tmp_path / "missing.spec.ts")])

    assert result.exit_code == 1
    assert "Script not found" in result.output
