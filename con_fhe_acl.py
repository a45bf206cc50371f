"""
FHE ACCESS CONTROL LIST

Bookkeeping of which principals may use or later decrypt a ciphertext handle.
No cryptographic work happens here; the provider and the decryption flow
consult it.

Grants are additive and idempotent. A handle that is superseded by a newer one
keeps its grants (append-only trail).
"""

# -----------------------------------------------------------------------------
# Parameters
# -----------------------------------------------------------------------------

# Fixed at construction; grant() trusts the provider name
READ_ONLY_KEYS = ['operator', 'provider']

# -----------------------------------------------------------------------------
# State
# -----------------------------------------------------------------------------

# (handle, principal) -> True
grants = Hash(default_value=False)

# handle -> number of distinct principals
grant_counts = Hash(default_value=0)

metadata = Hash()

AccessGrantedEvent = LogEvent('AccessGranted', {
    'handle': {'type': str, 'idx': True},
    'principal': {'type': str, 'idx': True}
})

# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

@construct
def seed(provider: str = 'con_fhe_provider'):
    metadata['operator'] = ctx.caller
    metadata['provider'] = provider

# -----------------------------------------------------------------------------
# Views
# -----------------------------------------------------------------------------

@export
def get_metadata():
    return {
        'operator': metadata['operator'],
        'provider': metadata['provider']
    }

@export
def change_metadata(key: str, value: Any):
    assert ctx.caller == metadata['operator'], 'Only operator can set metadata'
    assert key not in READ_ONLY_KEYS, 'Metadata key is read-only'
    metadata[key] = value

@export
def is_granted(handle: str, principal: str):
    return bool(grants[handle, principal])

@export
def grant_count(handle: str):
    return grant_counts[handle]

# -----------------------------------------------------------------------------
# Grants
# -----------------------------------------------------------------------------

@export
def grant(handle: str, principal: str):
    # The provider grants on behalf of contracts it has already checked;
    # anyone else may only share a handle they hold themselves.
    assert ctx.caller == metadata['provider'] or grants[handle, ctx.caller], 'Sender not allowed'

    if grants[handle, principal]:
        return False

    grants[handle, principal] = True
    grant_counts[handle] = grant_counts[handle] + 1

    AccessGrantedEvent({
        'handle': handle,
        'principal': principal
    })
    return True
