from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
import webbrowser

from .client import JutgeSubmitClient
from .config import DEFAULT_CONFIG_PATH
from .errors import JutgeSubmitError
from .models import SaveOutcome, SessionState, SubmissionResult

_LOG_FORMAT = "[jutgesubmit] %(levelname)s %(message)s"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=_LOG_FORMAT,
        stream=sys.stderr,
    )


def _report_save(outcome: SaveOutcome) -> None:
    if outcome.degraded:
        sys.stderr.write(
            "warning: could not save credentials to %s: %s\n"
            % (outcome.path, outcome.error)
        )


def _emit_result_text(result: SubmissionResult) -> None:
    if result.succeeded:
        sys.stdout.write("Submission sent.\n")
    elif result.http_status is None:
        sys.stdout.write("Submission failed: %s\n" % (result.error or "network error"))
    else:
        sys.stdout.write("Submission rejected (HTTP %d).\n" % result.http_status)
        if result.raw_response_body.strip():
            sys.stdout.write("%s\n" % result.raw_response_body.strip())
    sys.stdout.write("See the correction at %s\n" % result.result_url)


def _add_verbose_argument(
    parser: argparse.ArgumentParser, *, default: object = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=default,
        help="Enable debug logging of HTTP exchanges",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jutge-submit",
        description="Submit Verilog designs to the Jutge judge.",
    )
    _add_verbose_argument(parser, default=False)
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to client config (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--api-url", default=None, help="Submission endpoint override")
    parser.add_argument("--login-url", default=None, help="Login endpoint override")
    parser.add_argument(
        "--problems-url",
        default=None,
        help="Base URL of problem pages, used to build result links",
    )
    parser.add_argument("--compiler-id", default=None, help="Judge compiler identifier")
    parser.add_argument(
        "--credentials-path",
        default=None,
        help="Credential file override",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="HTTP timeout in seconds",
    )

    subparsers = parser.add_subparsers(dest="action", required=True)

    login = subparsers.add_parser("login", help="Log in and obtain a token")
    _add_verbose_argument(login, default=argparse.SUPPRESS)
    login.add_argument("--email", required=True)
    login.add_argument(
        "--password",
        default=None,
        help="Password (prompted for when omitted)",
    )
    login.add_argument(
        "--remember",
        action="store_true",
        help="Store email and token in the credential file",
    )

    logout = subparsers.add_parser("logout", help="Forget stored credentials")
    _add_verbose_argument(logout, default=argparse.SUPPRESS)

    status = subparsers.add_parser("status", help="Show session status")
    _add_verbose_argument(status, default=argparse.SUPPRESS)

    send = subparsers.add_parser("send", help="Submit a Verilog design")
    _add_verbose_argument(send, default=argparse.SUPPRESS)
    send.add_argument("design", help="Path to the Verilog source to submit")
    send.add_argument("--problem", default=None, help="Problem identifier")
    send.add_argument("--top-module", default=None, help="Top-level module name")
    send.add_argument("--annotation", default="", help="Free-text annotation")
    send.add_argument(
        "--remember",
        action="store_true",
        help="Store email and token in the credential file",
    )
    send.add_argument(
        "--open",
        action="store_true",
        help="Open the result page in a web browser",
    )
    send.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format",
    )

    return parser


def _run_login(client: JutgeSubmitClient, ns: argparse.Namespace) -> int:
    state = client.restore_session()
    password = ns.password
    if password is None:
        try:
            password = getpass.getpass("Password: ")
        except (EOFError, KeyboardInterrupt):
            sys.stderr.write("\n")
            raise ValueError("login cancelled") from None
    client.login(ns.email, password)
    sys.stdout.write("%s\n" % client.describe_session())
    if ns.remember or state.credentials is not None:
        _report_save(
            client.remember(state.problem, state.top_module, persist_identity=True)
        )
    return 0


def _run_send(client: JutgeSubmitClient, ns: argparse.Namespace) -> int:
    state = client.restore_session()
    problem = ns.problem or state.problem
    top_module = ns.top_module or state.top_module
    if not problem or not top_module:
        raise ValueError("--problem and --top-module are required (no stored values)")

    result = client.send(ns.design, problem, top_module, ns.annotation)

    persist_identity = bool(ns.remember) or state.credentials is not None
    _report_save(client.remember(problem, top_module, persist_identity=persist_identity))

    if ns.format == "json":
        sys.stdout.write(json.dumps(result.to_dict(), indent=2, sort_keys=True) + "\n")
    else:
        _emit_result_text(result)
    if ns.open:
        webbrowser.open(result.result_url)
    return 0 if result.succeeded else 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    _configure_logging(bool(getattr(ns, "verbose", False)))

    try:
        client = JutgeSubmitClient(
            config_path=ns.config,
            api_url=ns.api_url,
            login_url=ns.login_url,
            problems_url=ns.problems_url,
            compiler_id=ns.compiler_id,
            credentials_path=ns.credentials_path,
            timeout=ns.timeout,
        )
    except (ValueError, OSError) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 2

    with client:
        try:
            if ns.action == "login":
                return _run_login(client, ns)
            if ns.action == "logout":
                _report_save(client.logout())
                sys.stdout.write("Logged out.\n")
                return 0
            if ns.action == "status":
                client.restore_session()
                sys.stdout.write("%s\n" % client.describe_session())
                return 0 if client.session.state is SessionState.LOGGED_IN else 1
            return _run_send(client, ns)
        except (ValueError, JutgeSubmitError) as exc:
            sys.stderr.write(f"error: {exc}\n")
            return 2
