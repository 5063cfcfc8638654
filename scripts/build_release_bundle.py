#!/usr/bin/env python3
"""
Build a signed release bundle from a directory of pack and detection specs.

Usage:
    python build_release_bundle.py ./content --output ./dist/panther-analysis-all.zip --sign ./keys/release_signing_key.pem
"""

import argparse
import base64
import sys
from pathlib import Path

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding

# Add parent to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from packwarden.updates.bundle import ReleaseBundle
from packwarden.utils import hash_bytes


def main():
    parser = argparse.ArgumentParser(description="Build PackWarden release bundle")
    
    parser.add_argument(
        "content",
        help="Directory containing pack and detection YAML specs",
    )
    parser.add_argument(
        "--output",
        "-o",
        help="Bundle path",
        default="./dist/panther-analysis-all.zip",
    )
    parser.add_argument(
        "--sign",
        help="Path to RSA private key for signing",
        default=None,
    )
    
    args = parser.parse_args()
    
    try:
        bundle_path = ReleaseBundle.create(args.content, args.output)
        data = Path(bundle_path).read_bytes()
        
        # Parse back so a broken spec fails the build, not the install
        packs, detections = ReleaseBundle(data).parse()
        
        print(f"\nBundle created: {bundle_path}")
        print(f"  packs: {len(packs)}  detections: {len(detections)}")
        print(f"  sha512: {hash_bytes(data)}")
        
        if args.sign:
            sign_bundle(bundle_path, args.sign)
        
    except Exception as e:
        print(f"Error creating bundle: {e}")
        sys.exit(1)


def sign_bundle(bundle_path: str, private_key_path: str) -> str:
    """Write a base64 RSA PKCS#1 v1.5 / SHA-512 signature next to the bundle."""
    with open(private_key_path, "rb") as f:
        private_key = serialization.load_pem_private_key(f.read(), password=None)
    
    with open(bundle_path, "rb") as f:
        bundle_data = f.read()
    
    signature = private_key.sign(bundle_data, padding.PKCS1v15(), hashes.SHA512())
    
    sig_path = str(Path(bundle_path).with_suffix(".sig"))
    with open(sig_path, "wb") as f:
        f.write(base64.b64encode(signature))
    
    print(f"Bundle signed: {sig_path}")
    return sig_path


if __name__ == "__main__":
    main()
