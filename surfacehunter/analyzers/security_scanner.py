"""
Security anti-pattern scanner.
Scans any text buffer for hardcoded secrets, weak cryptography, dynamic SQL,
native command execution and insecure WebView settings. Also parses manifest
permission declarations.
"""

import math
import re
from dataclasses import dataclass, field
from typing import List, Tuple

from surfacehunter.analyzers import patterns
from surfacehunter.models import SecurityFinding, Severity


@dataclass
class SecurityScanResult:
    findings: List[SecurityFinding] = field(default_factory=list)
    hardcoded_keys: int = 0
    weak_algorithms: int = 0
    ssl_issues: int = 0


class SecurityScanner:

    # (pattern, kind, description)
    SECRET_PATTERNS = [
        (r'AKIA[0-9A-Z]{16}', 'aws_access_key', 'AWS access key ID'),
        (r'(?i)aws[_-]?secret[_-]?access[_-]?key["\']?\s*[:=]\s*["\'][a-zA-Z0-9/+=]{40}["\']', 'aws_secret', 'AWS secret access key'),
        (r'AIza[0-9A-Za-z_\-]{35}', 'google_api_key', 'Google API key'),
        (r'ya29\.[0-9A-Za-z_\-]{50,}', 'google_oauth_token', 'Google OAuth access token'),
        (r'(?i)AccountKey\s*=\s*[a-zA-Z0-9/+=]{86,88}', 'azure_storage_key', 'Azure storage account key'),
        (r'sk_live_[a-zA-Z0-9]{24,}', 'stripe_secret_key', 'Stripe live secret key'),
        (r'gh[pousr]_[a-zA-Z0-9]{36}', 'github_token', 'GitHub token'),
        (r'xox[baprs]-[0-9A-Za-z\-]{20,}', 'slack_token', 'Slack token'),
        (r'SG\.[a-zA-Z0-9_\-]{22}\.[a-zA-Z0-9_\-]{43}', 'sendgrid_api_key', 'SendGrid API key'),
        (r'-----BEGIN (?:RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----', 'private_key_pem', 'Embedded private key'),
        (r'(?i)\b(?:password|passwd|pwd)["\']?\s*[:=]\s*["\'][^"\'\s]{6,}["\']', 'hardcoded_password', 'Hardcoded password'),
        (r'(?i)\b(?:client_?secret|app_?secret|secret_?key|secret)["\']?\s*[:=]\s*["\'][A-Za-z0-9_\-+/=]{12,}["\']', 'hardcoded_secret', 'Hardcoded secret'),
        (r'(?i)\b(?:api_?key|apikey|x-api-key)["\']?\s*[:=]\s*["\'][A-Za-z0-9_\-]{16,}["\']', 'hardcoded_api_key', 'Hardcoded API key'),
        (r'(?i)\b(?:access_?token|auth_?token)["\']?\s*[:=]\s*["\'][A-Za-z0-9_\-.]{20,}["\']', 'hardcoded_token', 'Hardcoded access token'),
    ]

    OPAQUE_TOKEN_PATTERN = re.compile(r'["\']([A-Za-z0-9+/_\-]{40,}={0,2})["\']')
    OPAQUE_TOKEN_MIN_ENTROPY = 4.0

    WEAK_CRYPTO_PATTERNS = [
        (r'Cipher\.getInstance\s*\(\s*["\'](?:DES|DESede|RC4|ARCFOUR)\b', 'weak_cipher', 'Legacy cipher (DES/RC4)'),
        (r'["\']AES/ECB/', 'ecb_mode', 'AES in ECB mode'),
        (r'Cipher\.getInstance\s*\(\s*["\']AES["\']', 'ecb_mode', 'AES with default ECB mode'),
        (r'MessageDigest\.getInstance\s*\(\s*["\'](?:MD5|MD4|MD2)["\']|\bcreateHash\s*\(\s*["\']md5["\']|CryptoJS\.MD5\b', 'weak_hash', 'MD5 hash'),
        (r'MessageDigest\.getInstance\s*\(\s*["\']SHA-?1["\']|\bcreateHash\s*\(\s*["\']sha1["\']|CryptoJS\.SHA1\b', 'weak_hash', 'SHA-1 hash'),
        (r'(?i)\bTrustAll\w*|X509TrustManager[^{]*\{\s*[^}]*checkServerTrusted\s*\([^)]*\)\s*\{\s*\}', 'trust_all_certificates', 'Trust-all TLS certificate validator'),
        (r'ALLOW_ALL_HOSTNAME_VERIFIER|AllowAllHostnameVerifier|NoopHostnameVerifier', 'trust_all_hostnames', 'Hostname verification disabled'),
        (r'rejectUnauthorized\s*:\s*false|NODE_TLS_REJECT_UNAUTHORIZED\s*=\s*["\']?0', 'tls_validation_disabled', 'TLS certificate validation disabled'),
    ]

    SQL_INJECTION_PATTERNS = [
        (r'\b(?:rawQuery|execSQL|executeQuery|executeUpdate|query|execute)\s*\(\s*["\'][^"\']*\b(?:SELECT|INSERT|UPDATE|DELETE)\b[^"\']*["\']\s*\+', 'sql_concatenation', 'SQL statement built by string concatenation'),
        (r'\b(?:rawQuery|execSQL|executeQuery|query|execute)\s*\(\s*`[^`]*\b(?:SELECT|INSERT|UPDATE|DELETE)\b[^`]*\$\{', 'sql_interpolation', 'SQL statement built by template interpolation'),
        (r'\b(?:rawQuery|execSQL|executeQuery|query|execute)\s*\(\s*String\.format\s*\(\s*["\'][^"\']*\b(?:SELECT|INSERT|UPDATE|DELETE)\b', 'sql_format', 'SQL statement built with String.format'),
    ]

    COMMAND_EXEC_PATTERNS = [
        (r'Runtime\.getRuntime\(\)\.exec\s*\(|Ljava/lang/Runtime;->exec\(', 'runtime_exec', 'Native command execution via Runtime.exec'),
        (r'\bnew\s+ProcessBuilder\s*\(|Ljava/lang/ProcessBuilder;-><init>', 'process_builder', 'Native command execution via ProcessBuilder'),
        (r'\bchild_process\b|\bexecSync\s*\(|\bspawnSync\s*\(', 'child_process', 'Shell command execution from JavaScript'),
    ]

    WEBVIEW_PATTERNS = [
        (r'addJavascriptInterface\s*\(|Landroid/webkit/WebView;->addJavascriptInterface', 'webview_js_bridge', 'WebView JavaScript bridge exposed'),
        (r'setJavaScriptEnabled\s*\(\s*true\s*\)', 'webview_js_enabled', 'WebView JavaScript enabled'),
        (r'setAllowFileAccessFromFileURLs\s*\(\s*true\s*\)|setAllowUniversalAccessFromFileURLs\s*\(\s*true\s*\)|Landroid/webkit/WebSettings;->setAllow(?:File|Universal)AccessFromFileURLs', 'webview_file_access', 'WebView file access from file URLs'),
    ]

    PLAINTEXT_HTTP = re.compile(r'http://([A-Za-z0-9.\-]+)')
    NAMESPACE_HOSTS = (
        'schemas.android.com', 'www.w3.org', 'w3.org', 'ns.adobe.com',
        'xmlpull.org', 'schemas.xmlsoap.org', 'purl.org', 'schemas.microsoft.com',
        'www.apache.org', 'apache.org',
    )

    def __init__(self):
        self.secret_patterns = self._compile(self.SECRET_PATTERNS)
        self.weak_crypto_patterns = self._compile(self.WEAK_CRYPTO_PATTERNS)
        self.sql_patterns = self._compile(self.SQL_INJECTION_PATTERNS)
        self.command_patterns = self._compile(self.COMMAND_EXEC_PATTERNS)
        self.webview_patterns = self._compile(self.WEBVIEW_PATTERNS)

    @staticmethod
    def _compile(table):
        return [(re.compile(pattern), kind, description) for pattern, kind, description in table]

    def scan(self, text: str, location: str) -> SecurityScanResult:
        result = SecurityScanResult()

        for pattern, kind, description in self.secret_patterns:
            for match in pattern.finditer(text):
                result.findings.append(self._finding(kind, Severity.HIGH, description, location, text, match))
                result.hardcoded_keys += 1

        for match in self.OPAQUE_TOKEN_PATTERN.finditer(text):
            token = match.group(1)
            if calculate_entropy(token) < self.OPAQUE_TOKEN_MIN_ENTROPY:
                continue
            if '/' in token and not re.search(r'[+=]', token) and token.count('/') > 2:
                # looks like a path, not a key
                continue
            result.findings.append(self._finding(
                'high_entropy_token', Severity.HIGH, 'Long opaque token (possible embedded key)',
                location, text, match
            ))
            result.hardcoded_keys += 1

        for pattern, kind, description in self.weak_crypto_patterns:
            for match in pattern.finditer(text):
                result.findings.append(self._finding(kind, Severity.HIGH, description, location, text, match))
                result.weak_algorithms += 1

        for pattern, kind, description in self.sql_patterns:
            for match in pattern.finditer(text):
                result.findings.append(self._finding(kind, Severity.CRITICAL, description, location, text, match))

        for pattern, kind, description in self.command_patterns:
            for match in pattern.finditer(text):
                result.findings.append(self._finding(kind, Severity.CRITICAL, description, location, text, match))

        for pattern, kind, description in self.webview_patterns:
            for match in pattern.finditer(text):
                result.findings.append(self._finding(kind, Severity.HIGH, description, location, text, match))

        for match in self.PLAINTEXT_HTTP.finditer(text):
            if match.group(1).lower() not in self.NAMESPACE_HOSTS:
                result.ssl_issues += 1

        return result

    def scan_manifest(self, text: str, location: str, binary: bool = False) -> Tuple[List[str], List[SecurityFinding]]:
        """Parse declared permissions; flag the sensitive ones."""
        pattern = patterns.BINARY_PERMISSION_PATTERN if binary else patterns.PERMISSION_PATTERN

        permissions = []
        seen = set()
        for match in pattern.finditer(text):
            name = match.group('name')
            if name not in seen:
                seen.add(name)
                permissions.append(name)

        findings = []
        for name in permissions:
            if name in patterns.SENSITIVE_PERMISSIONS:
                findings.append(SecurityFinding(
                    kind='Sensitive Permission',
                    severity=Severity.MEDIUM,
                    description=f"App requests sensitive permission {name.rsplit('.', 1)[-1]} ({name})",
                    source_location=location,
                    evidence=name,
                ))

        return permissions, findings

    def _finding(self, kind: str, severity: Severity, description: str,
                 location: str, text: str, match) -> SecurityFinding:
        return SecurityFinding(
            kind=kind,
            severity=severity,
            description=description,
            source_location=location,
            evidence=build_evidence(text, match.start(), match.end()),
        )


def build_evidence(text: str, start: int, end: int) -> str:
    snippet = text[max(0, start - 100):end + 100]
    return " ".join(snippet.split())[:100]


def calculate_entropy(value: str) -> float:
    if not value or len(value) < 4:
        return 0.0

    freq = {}
    for char in value:
        freq[char] = freq.get(char, 0) + 1

    entropy = 0.0
    length = len(value)
    for count in freq.values():
        prob = count / length
        entropy -= prob * math.log2(prob)

    return entropy
