"""Built-in keyword-gated regex detectors.

These detectors cover common credential formats with distinctive prefixes.
They do not call out to the issuing services, so every result they produce
is unverified.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from scanbridge.engine.base import Detector, DetectorResult


def redact_secret(secret: str, visible_chars: int = 4) -> str:
    """Redact a secret, showing only first and last few characters.

    Args:
        secret: The secret string to redact.
        visible_chars: Number of characters to show at start and end.

    Returns:
        Redacted string like "AKIA****MPLE".
    """
    if len(secret) <= visible_chars * 2:
        return "*" * len(secret)
    return f"{secret[:visible_chars]}{'*' * (len(secret) - visible_chars * 2)}{secret[-visible_chars:]}"


class PatternDetector(Detector):
    """Detector driven by one or more regular expressions.

    Each pattern should have a capture group around the secret; without one
    the whole match is the secret.
    """

    def __init__(
        self,
        detector_type: str,
        description: str,
        patterns: Sequence[re.Pattern[str]],
        keywords: Sequence[str],
        version: int | None = None,
        extra_data: dict[str, str] | None = None,
    ) -> None:
        self._type = detector_type
        self._description = description
        self._patterns = tuple(patterns)
        self._keywords = tuple(keywords)
        self.version = version
        self._extra_data = extra_data or {}

    @property
    def detector_type(self) -> str:
        return self._type

    @property
    def description(self) -> str:
        return self._description

    def keywords(self) -> Sequence[str]:
        return self._keywords

    def from_data(self, data: str, verify: bool) -> list[DetectorResult]:
        results: list[DetectorResult] = []
        seen: set[str] = set()

        for pattern in self._patterns:
            for match in pattern.finditer(data):
                secret = match.group(1) if pattern.groups else match.group(0)
                if not secret or secret in seen:
                    continue
                seen.add(secret)
                results.append(
                    DetectorResult(
                        detector_type=self._type,
                        raw=secret.encode("utf-8"),
                        redacted=redact_secret(secret),
                        verified=False,
                        extra_data=dict(self._extra_data),
                    )
                )
        return results

    def __repr__(self) -> str:
        return f"PatternDetector({self._type!r})"


BUILTIN_DETECTORS: tuple[PatternDetector, ...] = (
    PatternDetector(
        "AWS",
        "AWS access key IDs used to authenticate to Amazon Web Services.",
        [re.compile(r"(?:^|[^A-Z0-9])((?:AKIA|ABIA|ACCA|ASIA)[A-Z0-9]{16})(?:[^A-Z0-9]|$)")],
        keywords=("akia", "abia", "acca", "asia"),
        extra_data={"resource_type": "Access key"},
    ),
    PatternDetector(
        "Github",
        "GitHub personal access, OAuth, app and refresh tokens.",
        [
            re.compile(r"\b((?:ghp|gho|ghu|ghs|ghr)_[a-zA-Z0-9]{36})\b"),
            re.compile(r"\b(github_pat_[a-zA-Z0-9]{22}_[a-zA-Z0-9]{59})\b"),
        ],
        keywords=("ghp_", "gho_", "ghu_", "ghs_", "ghr_", "github_pat_"),
        version=2,
    ),
    PatternDetector(
        "Gitlab",
        "GitLab personal access, pipeline trigger and runner registration tokens.",
        [
            re.compile(r"\b(glpat-[a-zA-Z0-9\-=_]{20,})"),
            re.compile(r"\b(glptt-[a-zA-Z0-9\-=_]{20,})"),
            re.compile(r"\b(GR1348941[a-zA-Z0-9\-=_]{20,})"),
        ],
        keywords=("glpat-", "glptt-", "gr1348941"),
        version=2,
    ),
    PatternDetector(
        "Slack",
        "Slack bot, user and app-level tokens.",
        [
            re.compile(r"\b(xox[bp]-[0-9]{10,13}-[0-9]{10,13}(?:-[a-zA-Z0-9]{24})?)"),
            re.compile(r"\b(xapp-[0-9]-[A-Z0-9]+-[0-9]+-[a-zA-Z0-9]+)"),
        ],
        keywords=("xoxb-", "xoxp-", "xapp-"),
    ),
    PatternDetector(
        "SlackWebhook",
        "Slack incoming webhook URLs.",
        [re.compile(r"(https://hooks\.slack\.com/services/T[A-Z0-9]+/B[A-Z0-9]+/[a-zA-Z0-9]+)")],
        keywords=("hooks.slack.com",),
    ),
    PatternDetector(
        "Stripe",
        "Stripe live secret and restricted API keys.",
        [re.compile(r"\b((?:sk|rk)_live_[a-zA-Z0-9]{24,})")],
        keywords=("sk_live_", "rk_live_"),
    ),
    PatternDetector(
        "GoogleApiKey",
        "Google Cloud API keys.",
        [re.compile(r"\b(AIza[0-9A-Za-z_-]{35})")],
        keywords=("aiza",),
    ),
    PatternDetector(
        "GoogleOauth2",
        "Google OAuth client secrets.",
        [re.compile(r"\b(GOCSPX-[a-zA-Z0-9_-]{28})")],
        keywords=("gocspx-",),
    ),
    PatternDetector(
        "SendGrid",
        "SendGrid API keys.",
        [re.compile(r"\b(SG\.[a-zA-Z0-9_-]{22}\.[a-zA-Z0-9_-]{43})")],
        keywords=("sg.",),
    ),
    PatternDetector(
        "NpmToken",
        "npm registry access tokens.",
        [re.compile(r"\b(npm_[a-zA-Z0-9]{36})\b")],
        keywords=("npm_",),
        version=2,
    ),
    PatternDetector(
        "PyPI",
        "PyPI upload tokens.",
        [re.compile(r"\b(pypi-[a-zA-Z0-9_-]{50,})")],
        keywords=("pypi-",),
    ),
    PatternDetector(
        "OpenAI",
        "OpenAI API keys.",
        [
            re.compile(r"\b(sk-[a-zA-Z0-9]{20}T3BlbkFJ[a-zA-Z0-9]{20})\b"),
            re.compile(r"\b(sk-proj-[a-zA-Z0-9\-_]{80,})"),
        ],
        keywords=("t3blbkfj", "sk-proj-"),
    ),
    PatternDetector(
        "Anthropic",
        "Anthropic API keys.",
        [re.compile(r"\b(sk-ant-api03-[a-zA-Z0-9\-_]{93})")],
        keywords=("sk-ant-api03",),
    ),
    PatternDetector(
        "PrivateKey",
        "PEM-encoded private keys (RSA, EC, DSA, OpenSSH, PKCS#8, PGP).",
        [
            re.compile(
                r"(-----BEGIN (?:[A-Z]+ )*PRIVATE KEY(?: BLOCK)?-----"
                r"[\s\S]*?"
                r"-----END (?:[A-Z]+ )*PRIVATE KEY(?: BLOCK)?-----)"
            )
        ],
        keywords=("private key",),
    ),
    PatternDetector(
        "DiscordWebhook",
        "Discord webhook URLs.",
        [re.compile(r"(https://discord(?:app)?\.com/api/webhooks/[0-9]+/[a-zA-Z0-9_-]+)")],
        keywords=("discord",),
    ),
    PatternDetector(
        "TelegramBotToken",
        "Telegram bot API tokens.",
        [re.compile(r"\b([0-9]{8,10}:[a-zA-Z0-9_-]{35})\b")],
        keywords=("telegram",),
    ),
    PatternDetector(
        "Twilio",
        "Twilio API keys and account SIDs.",
        [re.compile(r"\b(SK[a-f0-9]{32})\b"), re.compile(r"\b(AC[a-f0-9]{32})\b")],
        keywords=("twilio",),
    ),
    PatternDetector(
        "JWT",
        "JSON Web Tokens.",
        [re.compile(r"\b(eyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*\.[a-zA-Z0-9_-]*)")],
        keywords=("eyj",),
    ),
    PatternDetector(
        "Postgres",
        "PostgreSQL connection strings with embedded passwords.",
        [re.compile(r"(postgres(?:ql)?://[^:\s/]+:[^@\s]+@[^\s'\"]+)", re.IGNORECASE)],
        keywords=("postgres",),
    ),
    PatternDetector(
        "MongoDB",
        "MongoDB connection strings with embedded passwords.",
        [re.compile(r"(mongodb(?:\+srv)?://[^:\s/]+:[^@\s]+@[^\s'\"]+)", re.IGNORECASE)],
        keywords=("mongodb",),
    ),
    PatternDetector(
        "DatadogToken",
        "Datadog API keys assigned to a datadog/dd key name.",
        [
            re.compile(
                r"(?i)(?:datadog[_-]?api[_-]?key|dd[_-]?api[_-]?key)\s*[=:]\s*['\"]?"
                r"([a-f0-9]{32})['\"]?"
            )
        ],
        keywords=("datadog", "dd_api", "dd-api"),
    ),
    PatternDetector(
        "Heroku",
        "Heroku API keys assigned to a heroku key name.",
        [
            re.compile(
                r"(?i)(?:heroku[_-]?api[_-]?key)\s*[=:]\s*['\"]?"
                r"([a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12})['\"]?"
            )
        ],
        keywords=("heroku",),
    ),
)
