#!/usr/bin/env python3
"""Issue a certificate signed by an existing CA (see `signcert --help`).

  python scripts/gen_cert.py --cn server.local --ca-cert ca.crt --ca-key ca.key --ca-serial ca.srl
"""
import sys
import pathlib

# ensure project root on sys.path when run as script
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1]))

from signcert.cli import main


if __name__ == '__main__':
	sys.exit(main())
