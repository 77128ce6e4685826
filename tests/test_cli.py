"""Tests for the riskvanguard command line."""

import json

import pytest

from riskvanguard.cli import main

WORKFLOW_YAML = """
riskvanguard: "1.0"
info:
  name: Lease sign-off
type: sequential
steps:
  intake:
    type: prompt
    config:
      template: "Lease for {{client}}"
  approval:
    type: approval
    depends_on: intake
"""


class TestAnalyzeCommand:
    """Tests for `riskvanguard analyze`."""

    def test_analyze_prints_summary(self, tmp_path, capsys, energy_lease):
        document = tmp_path / "lease.txt"
        document.write_text(energy_lease)

        main(["analyze", str(document), "--vertical", "energy", "--type", "lease"])

        out = capsys.readouterr().out
        assert "Agent: energy-domain-agent" in out
        assert "security_sentinel" in out
        assert "[medium] financial: Below-market royalty rate" in out

    def test_analyze_writes_json(self, tmp_path, energy_lease):
        document = tmp_path / "lease.txt"
        document.write_text(energy_lease)
        output = tmp_path / "result.json"

        main(
            [
                "analyze",
                str(document),
                "-v",
                "oil-gas",
                "-t",
                "lease",
                "--meta",
                "royalty_rate=15",
                "--context",
                "state=Texas",
                "-o",
                str(output),
            ]
        )

        data = json.loads(output.read_text())
        assert data["status"] == "completed"
        key_terms = data["domain_agent_result"]["analysis"]["key_terms_extracted"]
        assert key_terms["royalty_rate"] == 15

    def test_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["analyze", str(tmp_path / "missing.txt"), "-v", "energy", "-t", "lease"])
        assert exc_info.value.code == 1
        assert "File not found" in capsys.readouterr().err

    def test_unknown_vertical(self, tmp_path, capsys, energy_lease):
        document = tmp_path / "lease.txt"
        document.write_text(energy_lease)

        with pytest.raises(SystemExit) as exc_info:
            main(["analyze", str(document), "-v", "mining", "-t", "lease"])
        assert exc_info.value.code == 1
        assert "Analysis failed [not_found]" in capsys.readouterr().err

    def test_bad_pair(self, tmp_path, energy_lease):
        document = tmp_path / "lease.txt"
        document.write_text(energy_lease)

        with pytest.raises(SystemExit) as exc_info:
            main(["analyze", str(document), "-v", "energy", "-t", "lease", "--meta", "royalty"])
        assert exc_info.value.code == 2


class TestCatalogCommands:
    """Tests for `agents` and `templates`."""

    def test_agents(self, capsys):
        main(["agents"])
        out = capsys.readouterr().out
        assert "energy-domain-agent" in out
        assert "insurance-domain-agent" in out

    def test_templates(self, capsys):
        main(["templates"])
        out = capsys.readouterr().out
        assert "energy-lease-review" in out
        assert "insurance-claim-review" in out

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0


class TestWorkflowCommands:
    """Tests for `validate` and `run`."""

    def test_validate(self, tmp_path, capsys):
        path = tmp_path / "workflow.yaml"
        path.write_text(WORKFLOW_YAML)

        main(["validate", str(path)])

        out = capsys.readouterr().out
        assert "Workflow 'Lease sign-off' is valid!" in out
        assert "Order: intake -> approval" in out

    def test_validate_invalid(self, tmp_path, capsys):
        path = tmp_path / "workflow.yaml"
        path.write_text(WORKFLOW_YAML.replace('riskvanguard: "1.0"\n', ""))

        with pytest.raises(SystemExit) as exc_info:
            main(["validate", str(path)])
        assert exc_info.value.code == 1
        assert "Missing 'riskvanguard' version field" in capsys.readouterr().err

    def test_run_yaml(self, tmp_path, capsys):
        path = tmp_path / "workflow.yaml"
        path.write_text(WORKFLOW_YAML)
        output = tmp_path / "workflow.json"

        main(
            [
                "run",
                str(path),
                "--var",
                "client=Basin Ops",
                "--approve",
                "approval",
                "-o",
                str(output),
            ]
        )

        assert "finished: completed" in capsys.readouterr().out
        data = json.loads(output.read_text())
        assert data["steps"][0]["result"] == {"text": "Lease for Basin Ops"}

    def test_run_without_approval_fails(self, tmp_path, capsys):
        path = tmp_path / "workflow.yaml"
        path.write_text(WORKFLOW_YAML)

        with pytest.raises(SystemExit) as exc_info:
            main(["run", str(path), "--var", "client=Basin Ops"])
        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "finished: failed" in out
        assert "No decision recorded" in out

    def test_run_template(self, tmp_path, capsys, energy_lease):
        document = tmp_path / "lease.txt"
        document.write_text(energy_lease)

        main(
            [
                "run",
                "energy-lease-review",
                "--document",
                str(document),
                "--var",
                "document_name=Tract 7",
                "--var",
                "client=Basin Ops",
                "--approve",
                "legal_review",
                "--approve",
                "approval",
            ]
        )

        out = capsys.readouterr().out
        assert "Workflow 'Energy lease review' finished: completed" in out

    def test_run_unknown_template(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["run", "no-such-template"])
        assert exc_info.value.code == 1
        assert "Unknown workflow template" in capsys.readouterr().err
