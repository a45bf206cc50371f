import hashlib
import logging
import re
import secrets

logger = logging.getLogger(__name__)

# ---- Chain-constant parameters & helpers (mirror contracts) ----

UINT64 = 2**64

DECIMALS = 6
CLAIM_AMOUNT = 100 * 10**DECIMALS

_AMOUNT_RE = re.compile(r"^(\d+\.?\d*|\.\d+)$")

def sha3_hex(s: str) -> str:
    # Matches Xian env semantics: hex strings are hashed as bytes, anything else as utf-8
    try:
        data = bytes.fromhex(s)
    except ValueError:
        data = s.encode("utf-8")
    return hashlib.sha3_256(data).hexdigest()

def domain_hash(*parts) -> str:
    return sha3_hex("XFHE:v1|" + "|".join(str(x) for x in parts))

def input_keystream(network_key: str, nonce: str) -> int:
    return int(domain_hash("PAD", network_key, "INPUT", nonce)[:16], 16)

def random_nonce() -> str:
    return secrets.token_hex(32)

# ---- Encrypted inputs ----------------------------------------------------------

def encrypt_value(value: int, network_key: str, nonce: str = None) -> str:
    """
    Returns the 80 hex-char external ciphertext: 32-byte nonce || 8-byte masked value.
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError("Value must be an integer")
    if not 0 <= value < UINT64:
        raise ValueError("Value does not fit in 64 bits")
    if nonce is None:
        nonce = random_nonce()
    if len(nonce) != 64:
        raise ValueError("Nonce must be 32 bytes hex encoded")

    masked = (value + input_keystream(network_key, nonce)) % UINT64
    return nonce + format(masked, "016x")

def input_proof(ciphertext: str, contract: str, user: str) -> str:
    # Binds the input to the contract that will consume it and to its sender
    return domain_hash("INPUT", ciphertext, contract, user)

def build_encrypted_input(value: int,
                          network_key: str,
                          contract: str,
                          user: str,
                          nonce: str = None):
    """
    Returns kwargs for con_atlas_stake.stake() / withdraw() / confidential_transfer():
        (ciphertext, proof)
    The call must be signed by `user`.
    """
    ciphertext = encrypt_value(value, network_key, nonce)
    return {
        'ciphertext': ciphertext,
        'proof': input_proof(ciphertext, contract, user)
    }

# ---- Units ---------------------------------------------------------------------

def to_units(value: str, decimals: int = DECIMALS) -> int:
    """
    "25.5" -> 25_500_000 for 6 decimals. Extra fraction digits are truncated.
    """
    trimmed = str(value).strip()
    if not _AMOUNT_RE.match(trimmed):
        raise ValueError("Invalid amount")

    whole, _, fraction = trimmed.partition(".")
    fraction = (fraction + "0" * decimals)[:decimals]
    units = int((whole or "0") + fraction)
    if units >= UINT64:
        raise ValueError("Amount does not fit in 64 bits")
    return units

def format_units(units: int, decimals: int = DECIMALS) -> str:
    whole, fraction = divmod(int(units), 10**decimals)
    fraction = str(fraction).rjust(decimals, "0").rstrip("0") or "0"
    return f"{whole}.{fraction}"

# ---- Convenience: wallet-side input builder ----------------------------------

class EncryptedInputBuilder:
    """
    Builds encrypted inputs for one (contract, user) pair, the way a wallet
    prepares stake and withdraw calls. Plaintext amounts never leave this object.
    """
    def __init__(self, network_key: str, contract: str, user: str):
        self.network_key = network_key
        self.contract = contract
        self.user = user

    def encrypt(self, value: int, nonce: str = None):
        payload = build_encrypted_input(value, self.network_key, self.contract, self.user, nonce)
        logger.debug("Built encrypted input for %s -> %s", self.user, self.contract)
        return payload

    def encrypt_units(self, amount: str):
        return self.encrypt(to_units(amount))
