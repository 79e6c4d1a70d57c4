"""Tests for the CLI main module."""

import io
import json
from unittest.mock import patch

import pytest

from soap_multiref.cli.main import (
    EXIT_ERROR,
    EXIT_FAULT,
    EXIT_OK,
    create_argument_parser,
    main,
)

SESSION_RESPONSE = (
    b'<Envelope><Header><sessionId href="#id0"/></Header>'
    b'<Body><multiRef id="id0">123456</multiRef></Body></Envelope>'
)

FAULT_RESPONSE = (
    b'<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/">'
    b"<soapenv:Body><soapenv:Fault><faultcode>soapenv:Server</faultcode>"
    b"<faultstring>Boom</faultstring></soapenv:Fault></soapenv:Body>"
    b"</soapenv:Envelope>"
)


@pytest.fixture
def session_file(tmp_path):
    path = tmp_path / "response.xml"
    path.write_bytes(SESSION_RESPONSE)
    return path


class TestArgumentParser:
    """Test argument parsing."""

    def test_flatten_arguments(self):
        """Test parsing of the flatten command."""
        parser = create_argument_parser()
        args = parser.parse_args(
            ["flatten", "in.xml", "-o", "out.xml", "--max-depth", "8", "--keep-multiref"]
        )

        assert args.command == "flatten"
        assert args.input == "in.xml"
        assert str(args.output) == "out.xml"
        assert args.max_depth == 8
        assert args.keep_multiref is True
        assert args.no_cycle_check is False

    def test_fault_arguments(self):
        """Test parsing of the fault command."""
        args = create_argument_parser().parse_args(["fault", "-"])

        assert args.command == "fault"
        assert args.input == "-"


class TestFlattenCommand:
    """Test the flatten command."""

    def test_flatten_to_file(self, session_file, tmp_path):
        """Test writing the flattened document to a file."""
        output = tmp_path / "flat.xml"

        exit_code = main(["flatten", str(session_file), "-o", str(output)])

        assert exit_code == EXIT_OK
        assert output.read_bytes() == (
            b'<Envelope><Header><sessionId href="#id0">123456</sessionId></Header>'
            b"<Body /></Envelope>"
        )

    def test_flatten_to_stdout(self, session_file, capsysbinary):
        """Test writing the flattened document to stdout."""
        exit_code = main(["flatten", str(session_file)])

        assert exit_code == EXIT_OK
        assert b"<sessionId href=\"#id0\">123456</sessionId>" in capsysbinary.readouterr().out

    def test_flatten_from_stdin(self, tmp_path):
        """Test reading the document from stdin."""
        output = tmp_path / "flat.xml"
        stdin = io.TextIOWrapper(io.BytesIO(SESSION_RESPONSE))

        with patch("sys.stdin", stdin):
            exit_code = main(["flatten", "-", "-o", str(output)])

        assert exit_code == EXIT_OK
        assert b"123456</sessionId>" in output.read_bytes()

    def test_report(self, session_file, tmp_path, capsys):
        """Test the JSON report on stderr."""
        exit_code = main(
            ["flatten", str(session_file), "-o", str(tmp_path / "o.xml"), "--report"]
        )

        report = json.loads(capsys.readouterr().err)
        assert exit_code == EXIT_OK
        assert report["success"] is True
        assert report["metrics"]["references_resolved"] == 1
        assert report["metrics"]["multirefs_suppressed"] == 1

    def test_keep_multiref(self, session_file, tmp_path):
        """Test the --keep-multiref flag."""
        output = tmp_path / "flat.xml"

        main(["flatten", str(session_file), "-o", str(output), "--keep-multiref"])

        assert b"<multiRef" in output.read_bytes()

    def test_config_file(self, session_file, tmp_path):
        """Test loading a JSON configuration file."""
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"flatten": {"suppress_multiref": False}}))
        output = tmp_path / "flat.xml"

        exit_code = main(
            ["flatten", str(session_file), "-o", str(output), "--config", str(config)]
        )

        assert exit_code == EXIT_OK
        assert b"<multiRef" in output.read_bytes()

    def test_invalid_config_file(self, session_file, tmp_path, capsys):
        """Test that an invalid configuration is reported."""
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"unknown": 1}))

        exit_code = main(["flatten", str(session_file), "--config", str(config)])

        assert exit_code == EXIT_ERROR
        assert "Unknown configuration key" in capsys.readouterr().err

    def test_malformed_input(self, tmp_path, capsys):
        """Test that malformed input exits with an error."""
        path = tmp_path / "bad.xml"
        path.write_bytes(b"<a><b></a>")

        exit_code = main(["flatten", str(path)])

        assert exit_code == EXIT_ERROR
        assert "XML syntax error" in capsys.readouterr().err

    def test_cycle(self, tmp_path, capsys):
        """Test that a reference cycle exits with an error."""
        path = tmp_path / "cycle.xml"
        path.write_bytes(b'<a><b href="#p"/><multiRef id="p"><c href="#p"/></multiRef></a>')

        exit_code = main(["flatten", str(path)])

        assert exit_code == EXIT_ERROR
        assert "Reference cycle detected" in capsys.readouterr().err

    def test_depth_limit_flag(self, tmp_path, capsys):
        """Test the --max-depth flag."""
        path = tmp_path / "chain.xml"
        path.write_bytes(
            b'<r><a href="#p"/><multiRef id="p"><b href="#q"/></multiRef>'
            b'<multiRef id="q"><c href="#s"/></multiRef><multiRef id="s">1</multiRef></r>'
        )

        exit_code = main(["flatten", str(path), "--max-depth", "2"])

        assert exit_code == EXIT_ERROR
        assert "Reference depth 3 exceeds limit of 2" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        """Test that an unreadable input file exits with an error."""
        exit_code = main(["flatten", str(tmp_path / "missing.xml")])

        assert exit_code == EXIT_ERROR
        assert "Error:" in capsys.readouterr().err


class TestFaultCommand:
    """Test the fault command."""

    def test_fault_found(self, tmp_path, capsys):
        """Test that a Fault is printed as JSON with its own exit code."""
        path = tmp_path / "fault.xml"
        path.write_bytes(FAULT_RESPONSE)

        exit_code = main(["fault", str(path)])

        assert exit_code == EXIT_FAULT
        fault = json.loads(capsys.readouterr().out)
        assert fault["faultcode"] == "soapenv:Server"
        assert fault["faultstring"] == "Boom"

    def test_no_fault(self, tmp_path, capsys):
        """Test a response without Fault."""
        path = tmp_path / "ok.xml"
        path.write_bytes(
            b'<e:Envelope xmlns:e="http://schemas.xmlsoap.org/soap/envelope/"><e:Body/></e:Envelope>'
        )

        exit_code = main(["fault", str(path)])

        assert exit_code == EXIT_OK
        assert "No SOAP Fault" in capsys.readouterr().out

    def test_not_an_envelope(self, session_file, capsys):
        """Test that a document without SOAP envelope is an error."""
        exit_code = main(["fault", str(session_file)])

        assert exit_code == EXIT_ERROR
        assert "expected element type <Envelope>" in capsys.readouterr().err


class TestMain:
    """Test main entry point routing."""

    def test_no_command_prints_help(self, capsys):
        """Test that running without a command prints help."""
        exit_code = main([])

        assert exit_code == EXIT_ERROR
        assert "usage:" in capsys.readouterr().out

    @patch("soap_multiref.cli.main.cmd_flatten")
    def test_main_routes_flatten(self, mock_cmd_flatten):
        """Test routing to the flatten handler."""
        mock_cmd_flatten.return_value = 0

        assert main(["flatten", "x.xml"]) == 0
        mock_cmd_flatten.assert_called_once()

    @patch("soap_multiref.cli.main.cmd_flatten", side_effect=KeyboardInterrupt)
    def test_keyboard_interrupt(self, _mock_cmd_flatten, capsys):
        """Test the exit code after an interrupt."""
        assert main(["flatten", "x.xml"]) == 130
