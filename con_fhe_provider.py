"""
MOCK FHE COPROCESSOR

Encrypted 64-bit unsigned integers and booleans referenced by opaque handles.
Values live here, masked with a per-handle keystream derived from the network
key; callers only ever see handles. This stands in for a real FHE backend and
makes no secrecy claim beyond "the calling contract never reads plaintext".

Rules:
  - every result handle is granted to the calling contract
  - every operand must already be granted to the caller
  - comparisons and select are arithmetic over both operands, never a branch
  - only a transaction signer (not a contract) may decrypt, and only handles
    granted to them
"""

# -----------------------------------------------------------------------------
# Parameters & Helpers
# -----------------------------------------------------------------------------

UINT64 = 2**64

EUINT64 = 'euint64'
EBOOL = 'ebool'

OPS = ['as_encrypted', 'from_external', 'add', 'sub', 'le', 'select']

HEX_DIGITS = '0123456789abcdef'

def domain_hash(*parts):
    s = "|".join(str(x) for x in parts)
    return hashlib.sha3("XFHE:v1|" + s)

def keystream(*parts):
    return int(domain_hash("PAD", metadata['network_key'], *parts)[:16], 16)

def acl():
    return importlib.import_module(metadata['acl'])

# -----------------------------------------------------------------------------
# State
# -----------------------------------------------------------------------------

# handle -> EUINT64 | EBOOL
handle_kinds = Hash()

# handle -> masked value
ciphertexts = Hash()

# op name -> int
op_counts = Hash(default_value=0)

metadata = Hash()

next_handle = Variable()

# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

@construct
def seed(acl_contract: str = 'con_fhe_acl'):
    metadata['operator'] = ctx.caller
    metadata['acl'] = acl_contract
    metadata['network_key'] = domain_hash("NETWORK", ctx.caller, ctx.this)

    next_handle.set(0)

# -----------------------------------------------------------------------------
# Internal
# -----------------------------------------------------------------------------

def seal(handle: str, value: int):
    ciphertexts[handle] = (value + keystream("HANDLE", handle)) % UINT64

def unseal(handle: str):
    return (ciphertexts[handle] - keystream("HANDLE", handle)) % UINT64

def count(op: str):
    op_counts[op] = op_counts[op] + 1

def new_handle(kind: str, value: int):
    counter = next_handle.get()
    next_handle.set(counter + 1)

    handle = domain_hash("HANDLE", counter, kind, ctx.caller)
    handle_kinds[handle] = kind
    seal(handle, value)

    acl().grant(handle=handle, principal=ctx.caller)
    return handle

def require_operand(handle: str, kind: str):
    assert handle_kinds[handle] is not None, 'Unknown handle'
    assert handle_kinds[handle] == kind, 'Bad operand type'
    assert acl().is_granted(handle=handle, principal=ctx.caller), 'Sender not allowed'

# -----------------------------------------------------------------------------
# Views
# -----------------------------------------------------------------------------

@export
def get_metadata():
    return {
        'operator': metadata['operator'],
        'acl': metadata['acl'],
        'network_key': metadata['network_key']
    }

@export
def get_network_key():
    return metadata['network_key']

@export
def get_stats():
    ops = {}
    for op in OPS:
        ops[op] = op_counts[op]
    return {
        'handles': next_handle.get(),
        'ops': ops
    }

@export
def is_initialized(handle: str):
    return handle_kinds[handle] is not None

@export
def kind_of(handle: str):
    return handle_kinds[handle]

# -----------------------------------------------------------------------------
# Encryption
# -----------------------------------------------------------------------------

@export
def as_encrypted(value: int):
    assert 0 <= value < UINT64, 'Value out of range'
    count('as_encrypted')
    return new_handle(EUINT64, value)

@export
def from_external(ciphertext: str, proof: str, user: str):
    # ciphertext = 32-byte nonce || 8-byte masked value, hex encoded
    assert len(ciphertext) == 80, 'Invalid proof'
    for digit in ciphertext:
        assert digit in HEX_DIGITS, 'Invalid proof'
    assert proof == domain_hash("INPUT", ciphertext, ctx.caller, user), 'Invalid proof'

    nonce = ciphertext[:64]
    masked = int(ciphertext[64:], 16)
    value = (masked - keystream("INPUT", nonce)) % UINT64

    count('from_external')
    return new_handle(EUINT64, value)

# -----------------------------------------------------------------------------
# Arithmetic
# -----------------------------------------------------------------------------

@export
def add(a: str, b: str):
    require_operand(a, EUINT64)
    require_operand(b, EUINT64)
    count('add')
    return new_handle(EUINT64, (unseal(a) + unseal(b)) % UINT64)

@export
def sub(a: str, b: str):
    require_operand(a, EUINT64)
    require_operand(b, EUINT64)
    count('sub')
    return new_handle(EUINT64, (unseal(a) - unseal(b)) % UINT64)

@export
def le(a: str, b: str):
    require_operand(a, EUINT64)
    require_operand(b, EUINT64)
    count('le')
    # 1 iff a <= b; both values are below 2**64
    return new_handle(EBOOL, (unseal(b) - unseal(a) + UINT64) // UINT64)

@export
def select(cond: str, a: str, b: str):
    require_operand(cond, EBOOL)
    require_operand(a, EUINT64)
    require_operand(b, EUINT64)
    count('select')
    c = unseal(cond)
    return new_handle(EUINT64, (c * unseal(a) + (1 - c) * unseal(b)) % UINT64)

# -----------------------------------------------------------------------------
# Access & decryption
# -----------------------------------------------------------------------------

@export
def grant_access(handle: str, principal: str):
    assert handle_kinds[handle] is not None, 'Unknown handle'
    assert acl().is_granted(handle=handle, principal=ctx.caller), 'Sender not allowed'
    return acl().grant(handle=handle, principal=principal)

@export
def decrypt(handle: str):
    assert ctx.caller == ctx.signer, 'Only users can decrypt'
    assert handle_kinds[handle] is not None, 'Unknown handle'
    assert acl().is_granted(handle=handle, principal=ctx.caller), 'Sender not allowed'
    return unseal(handle)
