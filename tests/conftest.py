import asyncio
import sys
from pathlib import Path

import pytest
from botocore.stub import Stubber

REPO_ROOT = Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from storage_adapter_s3 import AdapterOptions, S3StorageAdapter  # noqa: E402
from storage_adapter_s3.impl import storage_s3  # noqa: E402

BUCKET = "assets"
REGION = "us-east-1"

_real_make_s3_client = storage_s3._make_s3_client


def make_options(s3_acl: str = "private", **overrides) -> AdapterOptions:
    kwargs = dict(
        bucket=BUCKET,
        region=REGION,
        access_key_id="AKIDEXAMPLE",
        secret_access_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        s3_acl=s3_acl,
    )
    kwargs.update(overrides)
    return AdapterOptions(**kwargs)


def stub_setup(stubber: Stubber, rules=None) -> None:
    """Queue head_bucket + lifecycle lookup (+ put when the cleanup rule is missing)."""
    stubber.add_response("head_bucket", {}, {"Bucket": BUCKET})
    if rules is None:
        stubber.add_client_error(
            "get_bucket_lifecycle_configuration",
            service_error_code="NoSuchLifecycleConfiguration",
            http_status_code=404,
            expected_params={"Bucket": BUCKET},
        )
        rules = []
    else:
        stubber.add_response("get_bucket_lifecycle_configuration", {"Rules": rules}, {"Bucket": BUCKET})

    if not any(r.get("ID") == storage_s3.CLEANUP_RULE_ID for r in rules):
        stubber.add_response(
            "put_bucket_lifecycle_configuration",
            {},
            {
                "Bucket": BUCKET,
                "LifecycleConfiguration": {"Rules": list(rules) + [storage_s3.cleanup_lifecycle_rule()]},
            },
        )


@pytest.fixture
def build_adapter(monkeypatch):
    """
    Returns build(s3_acl) -> (adapter, stubber).

    The adapter gets a real botocore S3 client (local SigV4 signing works) with
    a Stubber in front of every network call.
    """
    def _build(s3_acl: str = "private", **overrides):
        options = make_options(s3_acl, **overrides)
        client = _real_make_s3_client(options)
        stubber = Stubber(client)
        stubber.activate()
        monkeypatch.setattr(storage_s3, "_make_s3_client", lambda _opts: client)
        return S3StorageAdapter(options), stubber

    return _build


@pytest.fixture
def ready_adapter(build_adapter):
    adapter, stubber = build_adapter("private")
    stub_setup(stubber)
    asyncio.run(adapter.setup_lifecycle())
    stubber.assert_no_pending_responses()
    return adapter, stubber


@pytest.fixture
def public_adapter(build_adapter):
    adapter, stubber = build_adapter("public-read")
    stub_setup(stubber)
    asyncio.run(adapter.setup_lifecycle())
    return adapter, stubber
