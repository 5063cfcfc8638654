"""
PackWarden Release Verifier

Cryptographic verification of release bundles.
"""

import base64
import binascii
import hashlib
import logging
from typing import Dict, List, Optional, Tuple

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from .bundle import ReleaseBundle
from .github import ReleaseRepository
from ..config.settings import ReleasesConfig
from ..packs.errors import InvalidVersionError, MissingAssetsError, SignatureInvalidError
from ..packs.models import DetectionRecord, PackRecord, Release
from ..packs.versions import parse_semver

logger = logging.getLogger(__name__)

# Trust anchor for release signatures
PUBLIC_KEY_PEM = (
    b"-----BEGIN PUBLIC KEY-----\n"
    b"MIICIjANBgkqhkiG9w0BAQEFAAOCAg8AMIICCgKCAgEAtfz6a2sbfwNk+4NG8RTr\n"
    b"Gwict6eO7Nd7r2snHyeqElt0xv0LVqG0ynqMHGxvhXKI6wk6qv8rpFNlDU0Ha7/v\n"
    b"G9QHrkPuXvy5XU6g1jR6DCqo2Fqed3QBdwTg+JVz6ojMorwRut1DbFFh+MNuCKF2\n"
    b"k5vbsRdNnz/+Eh+JAgkfqxLxG64hjzzjqVmfnLTgy1sZGR5UGBytBpGRZys4sJ2v\n"
    b"m9/JTc3fU0lhp5xmWfJcgbADAPQuYI2TD9aNpZlD5y7XST3fY6NV+GI/dwe9G/ln\n"
    b"s8Rz+s9vKHXk6U6S/OO9aW3Ct+Erh/MDhlnqaoegWA7YiL3YR3X4bo/TtmD4miNF\n"
    b"QPxfbsw8UTi7CA0it/Dvpzw3C00+klnmOiMr76GqXKda3U5QrEpnYXEgzUifnUM6\n"
    b"COGWY+LJwbxiFfYPg+D1MD8AggRIH+LCXOF3PocnK2ra1xnGEcuArQ2qFJEX3szL\n"
    b"Z2HT9hKpgkX/9UvSwkfCdY8n3MRDn3o3HDJ43whpJblNMEIePhOZAyqd6XzVqwPr\n"
    b"9f33GImZOznkcxB4jJEIRdDnDmDI+jpOZfqZpmudS8zhHERP2Nm1DZ4ar/nVCRps\n"
    b"k1jSCMM9mPFWxFDJbdGjDzTtjyqHxBkR3ovJcP///pYhndZw6kIIprALfr1658Fa\n"
    b"ex+7VGQN6Ptf1P9m6OIACLcCAwEAAQ==\n"
    b"-----END PUBLIC KEY-----\n"
)


class ReleaseVerifier:
    """
    Verifies release identity and bundle authenticity.

    Bundles are signed with RSA PKCS#1 v1.5 over a SHA-512 digest of the raw
    archive bytes; the detached signature asset holds the base64 encoded
    signature.
    """

    def __init__(
        self,
        repository: ReleaseRepository,
        config: ReleasesConfig,
        public_key_pem: Optional[bytes] = None,
    ):
        """
        Initialize verifier.

        Args:
            repository: Remote release repository
            config: Release settings (asset names, minimum version)
            public_key_pem: Trusted key; defaults to the embedded key
        """
        self.repository = repository
        self.config = config
        self.public_key_pem = public_key_pem or PUBLIC_KEY_PEM

    def list_available_releases(self) -> List[Release]:
        """
        List releases that support packs, oldest first.

        Tags that are not semantic versions are skipped.
        """
        minimum = parse_semver(self.config.minimum_version)

        available = []
        for remote in self.repository.list_releases():
            version = parse_semver(remote.tag_name)
            if version is None:
                logger.warning(f"Can't parse release version: {remote.tag_name}")
                continue
            if version >= minimum:
                available.append((version, Release(id=remote.id, name=remote.tag_name)))

        available.sort(key=lambda item: item[0])
        return [release for _, release in available]

    def validate_version(self, release: Release):
        """Check the release name matches the repository tag for its id."""
        tag_name = self.repository.get_tag_name(release.id)
        if tag_name != release.name:
            logger.error(
                f"Release {release.id} is tagged {tag_name}, not {release.name}"
            )
            raise InvalidVersionError(
                f"invalid version specified: release {release.id} is not {release.name}"
            )

    def verify_signature(self, data: bytes, signature: bytes):
        """
        Verify a detached signature over bundle bytes.

        Raises:
            SignatureInvalidError: Signature or key material is bad, or they do not match
        """
        try:
            decoded_signature = base64.b64decode(b"".join(signature.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            raise SignatureInvalidError(f"signature is not valid base64: {e}") from e

        try:
            public_key = serialization.load_pem_public_key(self.public_key_pem)
        except (ValueError, UnsupportedAlgorithm) as e:
            raise SignatureInvalidError(f"error decoding public key: {e}") from e

        if not isinstance(public_key, rsa.RSAPublicKey):
            raise SignatureInvalidError("public key is not an RSA key")

        digest = hashlib.sha512(data).digest()
        try:
            public_key.verify(
                decoded_signature,
                digest,
                padding.PKCS1v15(),
                Prehashed(hashes.SHA512()),
            )
        except InvalidSignature as e:
            raise SignatureInvalidError("bundle signature does not match") from e

        logger.debug(f"Verified bundle signature (sha512 {digest.hex()[:16]}...)")

    def download_validate(
        self,
        release: Release,
    ) -> Tuple[Dict[str, PackRecord], Dict[str, DetectionRecord]]:
        """
        Download, verify and parse a release bundle.

        Args:
            release: Release claimed by the caller

        Returns:
            Pack fragments by pack id and detections by detection id
        """
        self.validate_version(release)

        asset_names = [self.config.bundle_asset, self.config.signature_asset]
        assets = self.repository.download_assets(release.id, asset_names)
        missing = [name for name in asset_names if name not in assets]
        if missing:
            raise MissingAssetsError(release.name, missing)

        try:
            self.verify_signature(
                assets[self.config.bundle_asset],
                assets[self.config.signature_asset],
            )
        except SignatureInvalidError as e:
            logger.error(f"Rejected release {release.name}: {e}")
            raise

        logger.info(f"Verified release {release.name}")
        return ReleaseBundle(assets[self.config.bundle_asset]).parse()
