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

import datetime
import hashlib
import os
import tempfile
from base64 import b64decode
from typing import List, Optional

from cryptography import x509
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID


class Identity:
    def __init__(self, name: str, org: str = None, org_unit: str = None, country: str = None):
        self.name = name
        self.org = org
        self.org_unit = org_unit
        self.country = country


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def x509_name(cn_name, org_name=None, org_unit=None, country=None):
    name = []
    if country:
        name.append(x509.NameAttribute(NameOID.COUNTRY_NAME, country))
    if org_name:
        name.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, org_name))
    if org_unit:
        name.append(x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, org_unit))
    name.append(x509.NameAttribute(NameOID.COMMON_NAME, cn_name))
    return x509.Name(name)


def identity_name(identity: Identity) -> x509.Name:
    return x509_name(identity.name, identity.org, identity.org_unit, identity.country)


def generate_keys(key_size=2048):
    pri_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size, backend=default_backend())
    pub_key = pri_key.public_key()
    return pri_key, pub_key


def generate_ec_keys():
    pri_key = ec.generate_private_key(ec.SECP256R1(), default_backend())
    pub_key = pri_key.public_key()
    return pri_key, pub_key


def is_ec_p256_key(pri_key) -> bool:
    return isinstance(pri_key, ec.EllipticCurvePrivateKey) and isinstance(pri_key.curve, ec.SECP256R1)


def is_supported_key(pri_key) -> bool:
    return isinstance(pri_key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey))


def generate_ca_cert(subject: Identity, pri_key, valid_days: int) -> x509.Certificate:
    """Build a self-signed X.509 v3 root certificate."""
    name = identity_name(subject)
    pub_key = pri_key.public_key()
    now = utcnow()
    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(pub_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=valid_days))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(pub_key), critical=False)
        .add_extension(x509.AuthorityKeyIdentifier.from_issuer_public_key(pub_key), critical=False)
    )
    return builder.sign(pri_key, hashes.SHA256(), default_backend())


def generate_cert(
    subject: x509.Name,
    issuer_cert: x509.Certificate,
    signing_pri_key,
    subject_pub_key,
    not_before: datetime.datetime,
    not_after: datetime.datetime,
    dns_names: Optional[List[str]] = None,
) -> x509.Certificate:
    """Build a leaf certificate for subject_pub_key, issued by issuer_cert."""
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_cert.subject)
        .public_key(subject_pub_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=isinstance(subject_pub_key, rsa.RSAPublicKey),
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH, ExtendedKeyUsageOID.SERVER_AUTH]),
            critical=False,
        )
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(subject_pub_key), critical=False)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_cert.public_key()),
            critical=False,
        )
    )
    if dns_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName([x509.DNSName(n) for n in dns_names]), critical=False
        )
    return builder.sign(signing_pri_key, hashes.SHA256(), default_backend())


def generate_csr(pri_key, common_name: str) -> x509.CertificateSigningRequest:
    builder = x509.CertificateSigningRequestBuilder().subject_name(x509_name(common_name))
    return builder.sign(pri_key, hashes.SHA256(), default_backend())


def serialize_pri_key(pri_key):
    return pri_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def serialize_cert(cert):
    return cert.public_bytes(serialization.Encoding.PEM)


def serialize_csr(csr):
    return csr.public_bytes(serialization.Encoding.PEM)


def load_crt_bytes(data: bytes):
    return x509.load_pem_x509_certificate(data, default_backend())


def load_crt_chain(data: bytes) -> List[x509.Certificate]:
    """Parse every PEM certificate in data, in file order."""
    return x509.load_pem_x509_certificates(data)


def load_crt_chain_file(path) -> List[x509.Certificate]:
    with open(path, "rb") as f:
        return load_crt_chain(f.read())


def load_csr(data: bytes) -> x509.CertificateSigningRequest:
    return x509.load_pem_x509_csr(data, default_backend())


def load_private_key(data: bytes):
    return serialization.load_pem_private_key(data, password=None, backend=default_backend())


def load_private_key_file(file_path):
    with open(file_path, "rb") as f:
        return load_private_key(f.read())


def public_key_fingerprint(pub_key) -> str:
    der = pub_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return hashlib.sha256(der).hexdigest()


def cert_fingerprint(cert: x509.Certificate) -> str:
    return cert.fingerprint(hashes.SHA256()).hex()


def get_cert_cn(cert: x509.Certificate) -> Optional[str]:
    attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return None
    return attrs[0].value


def get_csr_cn(csr: x509.CertificateSigningRequest) -> Optional[str]:
    attrs = csr.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return None
    return attrs[0].value


def decode_base64_pem(encoded: str) -> bytes:
    """Decode a base64 blob holding PEM text. Whitespace inside the blob is ignored."""
    return b64decode("".join(encoded.split()), validate=True)


def write_file_atomic(path: str, content: bytes, mode: Optional[int] = None):
    """Write content to path through a temporary file in the same directory and a rename."""
    dir_name = os.path.dirname(os.path.abspath(path))
    os.makedirs(dir_name, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=dir_name, prefix=f".{os.path.basename(path)}.")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def remove_file(path: str) -> bool:
    """Remove path if it exists. Returns whether a file was removed."""
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
