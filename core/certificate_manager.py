import ipaddress
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Union
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID, ExtendedKeyUsageOID
from config.app_config import VlessConfig
from config.constants import VlessConstants
from core.config_generator import resolve_endpoint_host_port
from core.exceptions import CertificateGenerationError
from core.logging_config import LoggerMixin
from core.file_utils import file_exists, write_secret_file

def generate_client_uuid() -> str:
    """Return a fresh random (version 4) client identity."""
    return str(uuid.uuid4())

def _parse_ip(value: str) -> Union[ipaddress.IPv4Address, ipaddress.IPv6Address, None]:
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        return None

def generate_self_signed_certificate(cert_path: str, key_path: str, common_name: str,
                                     key_size: int = VlessConstants.TLS_KEY_SIZE,
                                     valid_days: int = VlessConstants.TLS_VALID_DAYS) -> None:
    """Issue a self-signed server certificate for ``common_name``.

    The certificate also covers ``localhost`` and ``127.0.0.1``. Both files
    are written with mode 0600; the key is PKCS#1 PEM.
    """
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)

    dns_names: List[str] = []
    ip_addresses: List[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]] = []
    ip = _parse_ip(common_name)
    if ip is not None:
        ip_addresses.append(ip)
    else:
        dns_names.append(common_name)
    if "localhost" not in dns_names:
        dns_names.append("localhost")
    loopback = ipaddress.ip_address("127.0.0.1")
    if loopback not in ip_addresses:
        ip_addresses.append(loopback)

    san = [x509.DNSName(name) for name in dns_names] + [x509.IPAddress(addr) for addr in ip_addresses]
    subject = issuer = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    not_before = datetime.now(timezone.utc) - timedelta(hours=1)

    certificate = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + timedelta(days=valid_days))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=True,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
        .add_extension(x509.SubjectAlternativeName(san), critical=False)
        .sign(private_key, hashes.SHA256())
    )

    cert_pem = certificate.public_bytes(serialization.Encoding.PEM)
    key_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )
    write_secret_file(cert_path, cert_pem)
    write_secret_file(key_path, key_pem)

class CertificateManager(LoggerMixin):
    def __init__(self, config: VlessConfig):
        self.config = config

    @property
    def common_name(self) -> str:
        """TLS server name, else the endpoint host, else localhost."""
        name = self.config.tls_server_name.strip()
        if name:
            return name
        if self.config.endpoint_host.strip():
            host, _ = resolve_endpoint_host_port(self.config.endpoint_host, self.config.listen_port)
            return host
        return "localhost"

    def has_tls_material(self) -> bool:
        return file_exists(self.config.tls_cert_path) and file_exists(self.config.tls_key_path)

    def ensure_tls_material(self) -> bool:
        """Generate the certificate/key pair if either file is missing.

        Returns True when new material was written.
        """
        if self.has_tls_material():
            return False

        common_name = self.common_name
        try:
            generate_self_signed_certificate(self.config.tls_cert_path, self.config.tls_key_path, common_name)
        except (OSError, ValueError) as e:
            raise CertificateGenerationError(common_name, str(e))
        self.logger.info(
            "Generated self-signed TLS certificate",
            cert_path=self.config.tls_cert_path,
            common_name=common_name,
        )
        return True

    def get_certificate_info(self) -> dict:
        info = {
            "cert_path": self.config.tls_cert_path,
            "key_path": self.config.tls_key_path,
            "exists": self.has_tls_material(),
        }
        if info["exists"]:
            with open(self.config.tls_cert_path, "rb") as f:
                cert = x509.load_pem_x509_certificate(f.read())
            info["common_name"] = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value
            info["not_valid_after"] = cert.not_valid_after_utc.isoformat()
        return info
