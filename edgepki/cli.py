# Copyright (c) 2026, NVIDIA CORPORATION.  All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Command line interface.

    edgepki [--config FILE] [--basedir DIR] [--backend local|remote] [--ca-host HOST] [--verbose] <command>

Commands:
    new [common_name] [--force]   create key, CSR and certificate unless a usable certificate exists
    sign [csr_file]               sign a CSR and store the certificate
    show [cert_file]              print the decoded certificate
    delete                        remove key, CSR and certificate
    renew [--min-validity SECS]   renew the certificate if it expires soon
    check [--min-validity SECS]   exit 1 if the certificate expires soon, 0 otherwise

Log output goes to stderr; stdout only carries artifact paths and the ``show`` decode.
"""

import argparse
import sys
import traceback

from edgepki.config import load_config
from edgepki.constants import DEFINED_BACKENDS
from edgepki.errors import PKIError
from edgepki.log_utils import configure_logging, get_module_logger
from edgepki.orchestrator import LifecycleOrchestrator
from edgepki.renewer import RenewalDriver

CMD_NEW = "new"
CMD_SIGN = "sign"
CMD_SHOW = "show"
CMD_DELETE = "delete"
CMD_RENEW = "renew"
CMD_CHECK = "check"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_UNEXPECTED = 2

logger = get_module_logger()


def define_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="edgepki", description="Device certificate lifecycle tool")
    parser.add_argument("--config", type=str, default=None, help="YAML config file (default: $PKI_CONFIG)")
    parser.add_argument("--basedir", type=str, default=None, help="directory holding the key and certificates")
    parser.add_argument("--backend", type=str, choices=DEFINED_BACKENDS, default=None, help="signing backend")
    parser.add_argument("--ca-host", dest="ca_host", type=str, default=None, help="remote CA host[:port]")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging and tracebacks")

    sub_cmd = parser.add_subparsers(dest="sub_command", help="commands")

    new_parser = sub_cmd.add_parser(CMD_NEW, help="create key, CSR and certificate")
    new_parser.add_argument("common_name", nargs="?", default=None, help="device common name")
    new_parser.add_argument("-f", "--force", action="store_true", default=None, help="recreate everything")

    sign_parser = sub_cmd.add_parser(CMD_SIGN, help="sign a CSR")
    sign_parser.add_argument("csr_file", nargs="?", default=None, help="CSR file (default: the device CSR)")

    show_parser = sub_cmd.add_parser(CMD_SHOW, help="print a certificate")
    show_parser.add_argument("cert_file", nargs="?", default=None, help="certificate (default: the device certificate)")

    sub_cmd.add_parser(CMD_DELETE, help="remove key, CSR and certificate")

    renew_parser = sub_cmd.add_parser(CMD_RENEW, help="renew the certificate if it expires soon")
    _add_min_validity(renew_parser)
    renew_parser.add_argument(
        "--interval", type=float, default=None, help="keep running, checking every INTERVAL seconds"
    )

    check_parser = sub_cmd.add_parser(CMD_CHECK, help="exit 1 if the certificate expires soon")
    _add_min_validity(check_parser)

    return parser


def _add_min_validity(parser):
    parser.add_argument(
        "--min-validity",
        dest="min_validity",
        type=int,
        default=None,
        help="minimum remaining validity in seconds (default: $MIN_VALIDITY_SEC or 604800)",
    )


def _overrides(args) -> dict:
    return {
        "basedir": args.basedir,
        "backend": args.backend,
        "ca_host": args.ca_host,
        "min_validity_seconds": getattr(args, "min_validity", None),
    }


def handle_new(args, orchestrator: LifecycleOrchestrator) -> int:
    orchestrator.new(args.common_name, force=args.force)
    print(orchestrator.store.cert_path)
    return EXIT_OK


def handle_sign(args, orchestrator: LifecycleOrchestrator) -> int:
    print(orchestrator.sign(args.csr_file))
    return EXIT_OK


def handle_show(args, orchestrator: LifecycleOrchestrator) -> int:
    print(orchestrator.show(args.cert_file).to_text())
    return EXIT_OK


def handle_delete(args, orchestrator: LifecycleOrchestrator) -> int:
    for path in orchestrator.delete():
        print(path)
    return EXIT_OK


def handle_renew(args, orchestrator: LifecycleOrchestrator) -> int:
    driver = RenewalDriver(orchestrator)
    if args.interval:
        driver.run(args.interval)
    else:
        driver.run_once()
    return EXIT_OK


def handle_check(args, orchestrator: LifecycleOrchestrator) -> int:
    if orchestrator.expires_soon():
        logger.info(f"Certificate {orchestrator.store.cert_path} expires soon")
        return EXIT_ERROR
    return EXIT_OK


handlers = {
    CMD_NEW: handle_new,
    CMD_SIGN: handle_sign,
    CMD_SHOW: handle_show,
    CMD_DELETE: handle_delete,
    CMD_RENEW: handle_renew,
    CMD_CHECK: handle_check,
}


def run(argv=None) -> int:
    parser = define_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if not args.sub_command:
        parser.print_help(sys.stderr)
        return EXIT_ERROR

    try:
        config = load_config(args.config, overrides=_overrides(args))
        orchestrator = LifecycleOrchestrator.from_config(config)
        return handlers[args.sub_command](args, orchestrator)
    except PKIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except Exception as e:
        print(f"Unable to handle command: {args.sub_command} due to: {e}", file=sys.stderr)
        if args.verbose:
            print(traceback.format_exc(), file=sys.stderr)
        return EXIT_UNEXPECTED


def main():
    sys.exit(run())


if __name__ == "__main__":
    main()
