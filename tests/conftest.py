import hashlib
import importlib.util
from pathlib import Path

import contracting
import pytest
from contracting.client import ContractingClient
from contracting.compilation import whitelists

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ACL_PATH = PROJECT_ROOT / "con_fhe_acl.py"
PROVIDER_PATH = PROJECT_ROOT / "con_fhe_provider.py"
STAKE_PATH = PROJECT_ROOT / "con_atlas_stake.py"
HELPER_PATH = PROJECT_ROOT / "client_helper.py"
SUBMISSION_PATH = (
    Path(contracting.__file__).resolve().parent / "contracts" / "submission.s.py"
)

ACL_NAME = "con_fhe_acl"
PROVIDER_NAME = "con_fhe_provider"
STAKE_NAME = "con_atlas_stake"


@pytest.fixture(scope="session", autouse=True)
def enable_sha3_and_whitelist():
    whitelists.ALLOWED_BUILTINS.update({"hashlib", "decimal"})

    if not hasattr(hashlib, "sha3"):
        def _sha3(data):
            if isinstance(data, str):
                data = data.encode("utf-8")
            return hashlib.sha3_256(data).hexdigest()

        setattr(hashlib, "sha3", _sha3)


@pytest.fixture(scope="session")
def helper_module():
    spec = importlib.util.spec_from_file_location("client_helper_tests", HELPER_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def client():
    client = ContractingClient(signer="operator", metering=False)
    client.flush()
    client.set_submission_contract(str(SUBMISSION_PATH))
    return client


@pytest.fixture
def acl(client):
    client.submit(
        ACL_PATH.read_text(),
        name=ACL_NAME,
        owner=None,
        constructor_args={"provider": PROVIDER_NAME},
    )
    return client.get_contract(ACL_NAME)


@pytest.fixture
def provider(client, acl):
    client.submit(
        PROVIDER_PATH.read_text(),
        name=PROVIDER_NAME,
        owner=None,
        constructor_args={"acl_contract": ACL_NAME},
    )
    return client.get_contract(PROVIDER_NAME)


@pytest.fixture
def contract(client, provider):
    client.submit(
        STAKE_PATH.read_text(),
        name=STAKE_NAME,
        owner=None,
        constructor_args={"provider": PROVIDER_NAME},
    )
    return client.get_contract(STAKE_NAME)


@pytest.fixture
def inputs(helper_module, provider):
    """Returns a factory of encrypted-input builders bound to the stake contract."""
    network_key = provider.get_network_key()

    def builder(user, contract=STAKE_NAME):
        return helper_module.EncryptedInputBuilder(network_key, contract, user)

    return builder


@pytest.fixture
def reveal(provider):
    """User-side decryption of a handle, signed by the account that holds the grant."""
    def decrypt(handle, user):
        return provider.decrypt(handle=handle, signer=user)

    return decrypt
