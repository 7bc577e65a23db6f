import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from attestgate import __version__
from attestgate.attestation.engine import AttestationVerifier
from attestgate.attestation.errors import AttestationFormatError, DuplicateKeyIDError
from attestgate.attestation.loader import attestation_to_dict, load_attestations, load_public_key_set
from attestgate.attestation.signing import create_attestation, load_private_key_pem
from attestgate.observability.logs import configure_logging


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="attestgate")
    sub = p.add_subparsers(dest="cmd", required=True)

    verify_p = sub.add_parser("verify", help="Verify attestations over an image digest.")
    verify_p.add_argument("--attestation", required=True, help="Attestation JSON file (one object or a list)")
    verify_p.add_argument("--keys", help="Key set file (JSON/YAML), else uses ATTESTGATE_PUBLIC_KEYS")
    verify_p.add_argument("--digest", required=True, help="Digest of the image under evaluation")
    verify_p.add_argument("--format", default="text", choices=["json", "text"])
    verify_p.add_argument("--strict-key-ids", action="store_true", help="Fail on duplicate key IDs")

    sign_p = sub.add_parser("sign", help="Create a signed attestation for an image digest.")
    sign_p.add_argument("--key", required=True, help="Private key PEM file")
    sign_p.add_argument("--key-id", required=True, help="Key ID recorded in the attestation")
    sign_p.add_argument("--digest", required=True, help="Image digest to attest")
    sign_p.add_argument("--mode", default="pkix", choices=["pkix", "jwt"])
    sign_p.add_argument("--docker-reference", help="Image reference recorded in the payload")
    sign_p.add_argument("--output", help="Write attestation JSON to file")

    sub.add_parser("version", help="Print version.")
    return p


def _verify(args: argparse.Namespace) -> int:
    try:
        public_keys = load_public_key_set(args.keys)
        attestations = load_attestations(args.attestation)
        verifier = AttestationVerifier(
            args.digest,
            public_keys,
            strict_key_ids=True if args.strict_key_ids else None,
        )
    except (AttestationFormatError, DuplicateKeyIDError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    results = [verifier.report(attestation) for attestation in attestations]
    ok = any(r["ok"] for r in results)
    output = {
        "ok": ok,
        "image_digest": args.digest,
        "results": results,
        "warnings": list(verifier.warnings),
    }

    if args.format == "json":
        print(json.dumps(output, indent=2))
    else:
        print(f"Decision: {'ALLOW' if ok else 'DENY'}")
        print(f"Digest: {args.digest}")
        for r in results:
            status = "OK" if r["ok"] else f"{r['error_code']} ({r['message']})"
            print(f" - {r['key_id']}: {status}")
        for w in verifier.warnings:
            print(f"Warning: {w}", file=sys.stderr)
    return 0 if ok else 2


def _sign(args: argparse.Namespace) -> int:
    try:
        private_key = load_private_key_pem(Path(args.key).read_bytes())
        attestation = create_attestation(
            args.key_id,
            private_key,
            args.digest,
            mode=args.mode,
            docker_reference=args.docker_reference,
        )
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    document = attestation_to_dict(attestation)
    if args.output:
        try:
            with open(args.output, "w") as f:
                json.dump(document, f, indent=2)
        except OSError as e:
            print(f"Error writing output {args.output}: {e}", file=sys.stderr)
            return 1
    else:
        print(json.dumps(document, indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args_list = list(sys.argv[1:] if argv is None else argv)
    # If no arguments provided, show help
    if not args_list:
        args_list.append("--help")

    p = build_parser()
    args = p.parse_args(args_list)
    configure_logging()

    if args.cmd == "version":
        print(f"attestgate {__version__}")
        return 0
    if args.cmd == "verify":
        return _verify(args)
    if args.cmd == "sign":
        return _sign(args)
    return 2


if __name__ == "__main__":
    sys.exit(main())
