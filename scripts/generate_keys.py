#!/usr/bin/env python3

import argparse
import sys
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


def generate_keypair(output_dir: str, key_size: int = 4096):
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    public_key = private_key.public_key()
    
    private_path = output_path / "release_signing_key.pem"
    with open(private_path, "wb") as f:
        f.write(private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ))
    print(f"Private key saved: {private_path}")
    print("Keep this file secure! Do not commit to version control.")
    
    public_pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    public_path = output_path / "release_verify_key.pem"
    with open(public_path, "wb") as f:
        f.write(public_pem)
    print(f"Public key saved: {public_path}")
    
    print("\n--- Public Key (for embedding in packwarden/updates/verifier.py) ---")
    print(public_pem.decode())

def main():
    parser = argparse.ArgumentParser(description="Generate release signing keypair")
    parser.add_argument(
        "output_dir",
        nargs="?",
        default="./keys",
        help="Output directory for keys (default: ./keys)",
    )
    parser.add_argument(
        "--key-size",
        type=int,
        default=4096,
        help="RSA key size in bits (default: 4096)",
    )
    
    args = parser.parse_args()
    if args.key_size < 2048:
        print("Error: key size must be at least 2048 bits")
        sys.exit(1)
    generate_keypair(args.output_dir, args.key_size)

if __name__ == "__main__":
    main()
