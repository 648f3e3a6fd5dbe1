"""
=============================================================================
HANDLER POLICY AND DEV SERVER CONFIGURATION
=============================================================================

Declarative configuration for a registered endpoint (``Policy``) and
for the local development server (``DevServerConfig``).

=============================================================================
POLICY AT A GLANCE
=============================================================================

    create_handler(
        {"GET": list_items, "POST": create_item},
        Policy(
            allow_origins=["https://app.example.com"],   # CORS allow-list
            allow_credentials=True,                      # cookies/auth
            allow_headers=["X-Foo"],
            expose_headers=["X-Request-Id"],
            max_content_length=50_000,                   # 413 above this
            require_headers=["Authorization"],           # 401 if missing
            require_search_params=["page"],              # 400 if missing
            logger=ErrorLogger(),                        # error sink
        ),
    )

A policy is frozen. It is read once when the handler is registered and
shared, read-only, by every request that endpoint serves.

=============================================================================
ORIGIN POLICY SHAPES
=============================================================================

    allow_origins = None                        every origin
    allow_origins = "*"                         every origin
    allow_origins = "https://a.com"             exactly that origin
    allow_origins = ["https://a.com", "..."]    any listed origin
    allow_origins = re.compile(r"\\.a\\.com$")   pattern match
    allow_origins = lambda origin: ...          predicate

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    LAMBDA_HTTP_ALLOW_ORIGINS          "*" or comma list
    LAMBDA_HTTP_ALLOW_HEADERS          comma list
    LAMBDA_HTTP_EXPOSE_HEADERS         comma list
    LAMBDA_HTTP_ALLOW_CREDENTIALS      true/false
    LAMBDA_HTTP_MAX_CONTENT_LENGTH     integer bytes
    LAMBDA_HTTP_REQUIRE_HEADERS        comma list
    LAMBDA_HTTP_REQUIRE_SEARCH_PARAMS  comma list
    LAMBDA_HTTP_REQUIRE_CORS           true/false
    LAMBDA_HTTP_REQUIRE_SAME_ORIGIN    true/false
    LAMBDA_HTTP_REQUIRE_CREDENTIALS    true/false
    LAMBDA_HTTP_REQUIRE_JWT            true/false

=============================================================================
INTERVIEW QUESTIONS ABOUT CONFIGURATION
=============================================================================

Q: "Why validate the policy at registration instead of per request?"
A: "A contradictory policy (require CORS *and* same-origin) can never
   admit a request. Failing at import time surfaces that on deploy,
   not as a stream of 403s in production."

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple

from .auth import TokenDecoder, decode_token
from .errors import PolicyError


_TRUTHY = {"1", "true", "yes", "on"}


def _env_list(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Policy:
    """
    Validation and CORS policy for one registered endpoint.

    Every field is optional. List-valued fields accept any iterable of
    strings and are stored as tuples.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CORS
    # ─────────────────────────────────────────────────────────────────────
    allow_origins: Any = None
    allow_headers: Tuple[str, ...] = ()
    expose_headers: Tuple[str, ...] = ()
    allow_credentials: bool = False

    # How long browsers may cache a preflight answer (seconds)
    max_age: Optional[int] = None

    # ─────────────────────────────────────────────────────────────────────
    # Origin requirements (mutually exclusive)
    # ─────────────────────────────────────────────────────────────────────
    require_cors: bool = False
    require_same_origin: bool = False

    # ─────────────────────────────────────────────────────────────────────
    # Body size
    # None means no ceiling
    # ─────────────────────────────────────────────────────────────────────
    max_content_length: Optional[int] = None
    require_content_length: bool = False

    # ─────────────────────────────────────────────────────────────────────
    # Required request parts
    # ─────────────────────────────────────────────────────────────────────
    require_headers: Tuple[str, ...] = ()
    require_search_params: Tuple[str, ...] = ()
    require_credentials: bool = False
    require_jwt: bool = False

    # ─────────────────────────────────────────────────────────────────────
    # Collaborators
    # logger(error, request) is called for every request that ends in error
    # ─────────────────────────────────────────────────────────────────────
    logger: Optional[Callable[..., Any]] = None
    jwt_decoder: TokenDecoder = field(default=decode_token, repr=False)

    def __post_init__(self):
        for name in ("allow_headers", "expose_headers", "require_headers", "require_search_params"):
            value = getattr(self, name)
            if isinstance(value, str):
                value = (value,)
            object.__setattr__(self, name, tuple(value or ()))
        if isinstance(self.allow_origins, (list, set)):
            object.__setattr__(self, "allow_origins", tuple(self.allow_origins))

    @classmethod
    def from_env(cls, prefix: str = "LAMBDA_HTTP_", **overrides) -> "Policy":
        """
        Build a policy from environment variables.

        Keyword arguments win over the environment, which is how
        non-string collaborators such as ``logger`` are supplied:

            policy = Policy.from_env(logger=ErrorLogger())
        """
        origins = _env_list(f"{prefix}ALLOW_ORIGINS")
        max_length = os.getenv(f"{prefix}MAX_CONTENT_LENGTH")
        values = dict(
            allow_origins="*" if origins == ("*",) else (origins or None),
            allow_headers=_env_list(f"{prefix}ALLOW_HEADERS"),
            expose_headers=_env_list(f"{prefix}EXPOSE_HEADERS"),
            allow_credentials=_env_bool(f"{prefix}ALLOW_CREDENTIALS"),
            require_cors=_env_bool(f"{prefix}REQUIRE_CORS"),
            require_same_origin=_env_bool(f"{prefix}REQUIRE_SAME_ORIGIN"),
            max_content_length=int(max_length) if max_length else None,
            require_content_length=_env_bool(f"{prefix}REQUIRE_CONTENT_LENGTH"),
            require_headers=_env_list(f"{prefix}REQUIRE_HEADERS"),
            require_search_params=_env_list(f"{prefix}REQUIRE_SEARCH_PARAMS"),
            require_credentials=_env_bool(f"{prefix}REQUIRE_CREDENTIALS"),
            require_jwt=_env_bool(f"{prefix}REQUIRE_JWT"),
        )
        values.update(overrides)
        return cls(**values)

    def validate(self) -> None:
        """
        Reject contradictory or malformed settings.

        Raises:
            PolicyError: on the first problem found.
        """
        if self.require_cors and self.require_same_origin:
            raise PolicyError("require_cors and require_same_origin are mutually exclusive")

        if self.max_content_length is not None:
            if isinstance(self.max_content_length, bool) or not isinstance(self.max_content_length, int):
                raise PolicyError(f"max_content_length must be an int, got {self.max_content_length!r}")
            if self.max_content_length < 0:
                raise PolicyError("max_content_length must be >= 0")

        if self.logger is not None and not callable(self.logger):
            raise PolicyError("logger must be callable")

        if not callable(self.jwt_decoder):
            raise PolicyError("jwt_decoder must be callable")


@dataclass
class DevServerConfig:
    """
    Settings for ``python -m lambdahttp``.

    The dev server maps ``/<path>`` to ``<functions_dir>/<path>.py`` and
    calls that module's ``handler``.
    """

    host: str = "127.0.0.1"
    port: int = 8888
    functions_dir: str = "."
    log_level: str = "INFO"
    log_format: str = "text"

    @property
    def site_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @classmethod
    def from_env(cls) -> "DevServerConfig":
        """
        LAMBDA_HTTP_HOST, LAMBDA_HTTP_PORT, LAMBDA_HTTP_FUNCTIONS_DIR,
        LAMBDA_HTTP_LOG_LEVEL and LAMBDA_HTTP_LOG_FORMAT.
        """
        return cls(
            host=os.getenv("LAMBDA_HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("LAMBDA_HTTP_PORT", "8888")),
            functions_dir=os.getenv("LAMBDA_HTTP_FUNCTIONS_DIR", "."),
            log_level=os.getenv("LAMBDA_HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("LAMBDA_HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not os.path.isdir(self.functions_dir):
            raise ValueError(f"functions_dir does not exist: {self.functions_dir}")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json'")
