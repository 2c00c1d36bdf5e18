"""Manual check of bundles written by `mini-ca new`.

Run after creating a root, an intermediate and a leaf in one directory:

    python tests/manual/verify_chain.py certs root mid leaf1
"""
import sys
from pathlib import Path

from minica.crypto import pki
from minica.crypto.authority import load_authority


def verify_chain(directory: str, names: list[str]) -> None:
    certs = []
    for name in names:
        authority, paths = load_authority(directory, name)
        print(f"[*] {name}: {paths.cert_path}")
        for line in pki.describe_certificate(authority.certificate):
            print(f"      {line}")
        certs.append(authority.certificate)

    # 1) root is self-signed
    root = certs[0]
    pki.verify_cert_signed_by(root, root)
    print("[*] root self-signature is VALID")

    # 2) every link is signed by the one before it
    for parent, child, name in zip(certs, certs[1:], names[1:]):
        pki.verify_cert_signed_by(child, parent)
        print(f"[*] {name} signature is VALID")

    # 3) only the last link may be a non-CA
    for cert, name in zip(certs[:-1], names[:-1]):
        if not pki.is_ca_certificate(cert):
            raise pki.BadCertificate(f"{name} signs other certificates but is not a CA")

    for path in Path(directory).glob("*.pem"):
        print(f"[*] key mode {path.name}: {oct(path.stat().st_mode & 0o777)}")


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print("Usage: python tests/manual/verify_chain.py <dir> <root> [<child> ...]")
        sys.exit(1)
    verify_chain(sys.argv[1], sys.argv[2:])
