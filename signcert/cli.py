"""Issue a leaf certificate signed by an existing CA.

Usage examples:
  signcert --cn server.local --san DNS:server.local --san IP:10.0.0.5
      --ca-cert certs/ca.crt --ca-key certs/ca.key --ca-serial certs/ca.srl
      --output-dir certs/server
  signcert            # asks for everything it needs

Missing or invalid values are asked for interactively. CA paths, output
directory and duration can also come from CA_CERT, CA_KEY, CA_SERIAL,
OUTPUT_DIR and CERT_DURATION (a .env file in the working directory is read).
"""
import argparse
import sys

from dotenv import find_dotenv, load_dotenv

from signcert.config import DEFAULT_DURATION, VALID_SAN_TYPES, Configuration
from signcert.crypto import pki
from signcert.crypto.ca import IssuanceError
from signcert.crypto.issuer import issue_cert
from signcert.prompt import complete_configuration


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="signcert",
		description="Issue a certificate signed by an existing CA",
		allow_abbrev=False,
	)
	parser.add_argument('--cn', help='Common Name for the certificate (required)')
	parser.add_argument('--duration', metavar='DAYS',
						help=f'Duration for the certificate (default: {DEFAULT_DURATION} days)')
	parser.add_argument('--san', action='append', metavar='TYPE:VALUE',
						help='Subject Alternative Name, can be repeated for multiple SANs. '
						f'Accepted types: {", ".join(VALID_SAN_TYPES)}')
	parser.add_argument('--ca-cert', metavar='FILE', help='Path to the CA certificate (required)')
	parser.add_argument('--ca-key', metavar='FILE', help='Path to the CA private key (required)')
	parser.add_argument('--ca-serial', metavar='FILE', help='Path to the CA serial file (required)')
	parser.add_argument('--output-dir', metavar='DIR',
						help='Directory to save the generated files (default: current directory)')
	return parser


def main(argv=None) -> int:
	args = build_parser().parse_args(argv)
	load_dotenv(find_dotenv(usecwd=True))

	config = Configuration.from_args(args)
	try:
		request = complete_configuration(config)
		issued = issue_cert(request)
	except (EOFError, KeyboardInterrupt):
		print("\nAborted.", file=sys.stderr)
		return 1
	except IssuanceError as e:
		print(f"Error: {e}", file=sys.stderr)
		return 1

	try:
		pki.validate_certificate(issued.cert_path, request.ca_cert, expected_cn=request.cn)
	except ValueError as e:
		print(f"Certificate verification failed: {e}", file=sys.stderr)
		return 1
	return 0


if __name__ == '__main__':
	sys.exit(main())
