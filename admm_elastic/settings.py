"""Solver settings, per-step runtime data and loading of saved solver state."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path

import numpy as np

_FLOAT_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_RE = re.compile(r"[+-]?\d+")

_HELP_FLAGS = ("-help", "--help", "-h")

HELP_TEXT = (
    "\n==========================================\nArgs:\n"
    "\t-dt: time step (s)\n"
    "\t-v: verbosity (higher -> show more)\n"
    "\t-it: # admm iters\n"
    "\t-g: gravity (m/s^2)\n"
    "\t-ls: linear solver (0=LDLT, 1=NCMCGS, 2=UzawaCG) \n"
    "\t-ck: constraint weights (-1 = auto) \n"
    "\t-a: acceleration type (0=NoAcc, 1=Anderson) \n"
    "\t-am: anderson window size (>0, int) \n"
    "==========================================\n"
)


def _leading_float(text):
    """Parse the leading number of ``text``; 0.0 if there is none."""
    match = _FLOAT_RE.match(text.lstrip())
    return float(match.group()) if match else 0.0


def _leading_int(text):
    """Parse the leading integer of ``text``; 0 if there is none."""
    match = _INT_RE.match(text.lstrip())
    return int(match.group()) if match else 0


class AccelerationType(IntEnum):
    NOACC = 0
    ANDERSON = 1


@dataclass
class Settings:
    """Solver settings; most can be set from command-line arguments."""

    timestep_s: float = 1.0 / 30.0
    verbose: int = 1
    admm_iters: int = 500
    gravity: float = -9.8
    constraint_w: float = -1.0
    anderson_m: int = 2
    penalty: float = 1.0
    acceleration_type: AccelerationType = AccelerationType.NOACC

    def parse_args(self, argv):
        """Read settings from arguments (without the program name).

        Returns True if help was requested (and printed).
        """
        args = list(argv)
        for arg, val in zip(args, args[1:]):
            if arg in _HELP_FLAGS:
                self.help()
                return True
            if arg == "-dt":
                self.timestep_s = _leading_float(val)
            elif arg == "-v":
                self.verbose = _leading_int(val)
            elif arg == "-it":
                self.admm_iters = _leading_int(val)
            elif arg == "-g":
                self.gravity = _leading_float(val)
            elif arg == "-ck":
                self.constraint_w = _leading_float(val)
            elif arg == "-a":
                self.acceleration_type = (
                    AccelerationType.NOACC
                    if _leading_int(val) == 0
                    else AccelerationType.ANDERSON
                )
            elif arg == "-am":
                self.anderson_m = _leading_int(val)
                self.acceleration_type = AccelerationType.ANDERSON
            elif arg == "-ap":
                self.penalty = _leading_float(val)

        if args and args[-1] in _HELP_FLAGS:
            self.help()
            return True
        return False

    def help(self):
        """Print and return the argument summary."""
        print(HELP_TEXT, end="")
        return HELP_TEXT


@dataclass
class RuntimeData:
    """Timings (ms) gathered over one time step."""

    global_ms: float = 0.0
    local_ms: float = 0.0
    acceleration_ms: float = 0.0
    initialization_ms: float = 0.0
    inner_iters: int = 0
    step_time: list = field(default_factory=list)

    def report(self, settings):
        """Return a human-readable summary of the timings."""
        iters = float(settings.admm_iters)
        lines = [
            f"Total global step: {self.global_ms:g}ms",
            f"Total local step: {self.local_ms:g}ms",
            f"Total acceleration step: {self.acceleration_ms:g}ms",
            f"Total Initialization time: {self.initialization_ms:g}ms",
            f"Avg global step: {self.global_ms / iters:g}ms",
            f"Avg local step: {self.local_ms / iters:g}ms",
            f"Avg acceleration step: {self.acceleration_ms / iters:g}ms",
            f"Avg Initialization step: {self.initialization_ms / iters:g}ms",
            f"ADMM Iters: {settings.admm_iters}",
            f"Avg Inner Iters: {float(self.inner_iters) / iters:g}",
            f"Anderson M: {settings.anderson_m}",
        ]
        return "".join("\n" + line for line in lines)


def _read_count(tokens, expected, which):
    try:
        token = next(tokens)
    except StopIteration:
        raise ValueError(f"error parsing the number of values{which}") from None
    if not _INT_RE.match(token):
        raise ValueError(f"error parsing the number of values{which}")
    n = _leading_int(token)
    if n <= 0 or n != expected:
        raise ValueError(f"invalid number of values{which}")
    return n


def _read_values(tokens, count):
    values = []
    for i in range(count):
        try:
            values.append(float(next(tokens)))
        except (StopIteration, ValueError):
            raise ValueError(f"error parsing value at position {i}") from None
    return values


def load_state(file_name, file_name2, n_z, n_x):
    """Load saved ADMM state.

    The first file holds a count equal to ``n_z`` followed by that many
    ``z u last_z`` triples; the second a count equal to ``n_x`` followed by
    the ``x`` values. Returns ``(z, u, last_z, x)``.
    """
    tokens = iter(Path(file_name).read_text().split())
    tokens2 = iter(Path(file_name2).read_text().split())

    n = _read_count(tokens, n_z, "")
    triples = np.array(_read_values(tokens, 3 * n)).reshape(n, 3)

    n2 = _read_count(tokens2, n_x, " from file 2")
    x = np.array(_read_values(tokens2, n2))

    return triples[:, 0].copy(), triples[:, 1].copy(), triples[:, 2].copy(), x