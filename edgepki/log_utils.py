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
import inspect
import logging
import logging.config

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONCISE_FORMAT = "%(levelname)s: %(message)s"


def get_module_logger(module=None, name=None) -> logging.Logger:
    # Get module logger name adhering to logger hierarchy. Optionally add name as a suffix.
    if module is None:
        caller_globals = inspect.stack()[1].frame.f_globals
        module = caller_globals.get("__name__", "")

    return logging.getLogger(f"{module}.{name}" if name else module)


def get_obj_logger(obj) -> logging.Logger:
    # Get object logger name adhering to logger hierarchy.
    if isinstance(obj, type):
        logger_name = f"{obj.__module__}.{obj.__name__}"
    elif obj:
        logger_name = f"{obj.__module__}.{obj.__class__.__qualname__}"
    else:
        logger_name = None
    return logging.getLogger(logger_name) if logger_name else None


def log_config_dict(level: str = "INFO", verbose: bool = False) -> dict:
    """Console-only logging config. Records go to stderr so stdout stays reserved for command output."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "consoleFormatter": {"format": CONSOLE_FORMAT if verbose else CONCISE_FORMAT},
        },
        "handlers": {
            "consoleHandler": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "consoleFormatter",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "edgepki": {"level": level, "handlers": ["consoleHandler"], "propagate": False},
        },
    }


def configure_logging(verbose: bool = False):
    level = "DEBUG" if verbose else "INFO"
    logging.config.dictConfig(log_config_dict(level, verbose))
