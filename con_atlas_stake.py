"""
ATLAS CONFIDENTIAL STAKING (mETH)

Balances and staked amounts are ciphertext handles held by the FHE provider.
This contract never sees a plaintext amount and never branches on one:
  - claim() mints a fixed entitlement once per account
  - stake() moves an encrypted amount from the balance into the vault
  - withdraw() moves it back, clamped to the staked amount with an encrypted
    select, so an over-limit request is a silent zero transfer

The vault is the account record keyed by this contract's own name.
"""

# -----------------------------------------------------------------------------
# Parameters & Helpers
# -----------------------------------------------------------------------------

DECIMALS = 6
CLAIM_AMOUNT = 100 * 10**DECIMALS  # 100 mETH

READ_ONLY_KEYS = ['provider', 'decimals', 'claim_amount', 'total_supply', 'claims']

def fhe():
    return importlib.import_module(metadata['provider'])

def initialized(handle):
    return handle is not None and fhe().is_initialized(handle=handle)

def share(handle: str, *principals):
    for principal in principals:
        fhe().grant_access(handle=handle, principal=principal)

# -----------------------------------------------------------------------------
# State
# -----------------------------------------------------------------------------

# address -> {'balance': str | None, 'staked': str | None, 'claimed': bool}
accounts = Hash()

# contract metadata / config
metadata = Hash()

# counter for events
next_tx_id = Variable()

# Events
ClaimedEvent = LogEvent('Claimed', {
    'account': {'type': str, 'idx': True},
    'amount': {'type': str},
    'tx_id': {'type': int, 'idx': True}
})

StakedEvent = LogEvent('Staked', {
    'account': {'type': str, 'idx': True},
    'amount': {'type': str},
    'tx_id': {'type': int, 'idx': True}
})

WithdrawnEvent = LogEvent('Withdrawn', {
    'account': {'type': str, 'idx': True},
    'amount': {'type': str},
    'tx_id': {'type': int, 'idx': True}
})

ConfidentialTransferEvent = LogEvent('ConfidentialTransfer', {
    'from': {'type': str, 'idx': True},
    'to': {'type': str, 'idx': True},
    'amount': {'type': str},
    'tx_id': {'type': int, 'idx': True}
})

# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

@construct
def seed(provider: str = 'con_fhe_provider'):
    metadata['name'] = "Atlas Staked mETH"
    metadata['symbol'] = "mETH"
    metadata['decimals'] = DECIMALS
    metadata['operator'] = ctx.caller
    metadata['provider'] = provider
    metadata['claim_amount'] = CLAIM_AMOUNT

    # Public: every claim mints the same known amount
    metadata['total_supply'] = 0
    metadata['claims'] = 0

    next_tx_id.set(1)

# -----------------------------------------------------------------------------
# Views
# -----------------------------------------------------------------------------

@export
def get_metadata():
    return {
        'name': metadata['name'],
        'symbol': metadata['symbol'],
        'decimals': metadata['decimals'],
        'operator': metadata['operator'],
        'provider': metadata['provider'],
        'claim_amount': metadata['claim_amount'],
        'total_supply': metadata['total_supply'],
        'claims': metadata['claims']
    }

@export
def change_metadata(key: str, value: Any):
    assert ctx.caller == metadata['operator'], 'Only operator can set metadata'
    assert key not in READ_ONLY_KEYS, 'Metadata key is read-only'
    metadata[key] = value

@export
def confidential_balance_of(account: str):
    data = accounts[account]
    return None if data is None else data['balance']

@export
def staked_balance_of(account: str):
    data = accounts[account]
    return None if data is None else data['staked']

@export
def has_claimed(account: str):
    data = accounts[account]
    return data is not None and data['claimed']

# -----------------------------------------------------------------------------
# Ledger core
# -----------------------------------------------------------------------------

def load(account: str):
    data = accounts[account]
    if data is None:
        return {'balance': None, 'staked': None, 'claimed': False}
    return data

def next_tx():
    tid = next_tx_id.get()
    next_tx_id.set(tid + 1)
    return tid

def mint(account: str, amount: int):
    provider = fhe()
    minted = provider.as_encrypted(value=amount)

    data = load(account)
    if initialized(data['balance']):
        current = data['balance']
    else:
        current = provider.as_encrypted(value=0)

    # Persisted balances never alias the minted handle
    data['balance'] = provider.add(a=current, b=minted)
    accounts[account] = data

    share(data['balance'], account, ctx.this)
    share(minted, account, ctx.this)
    return minted

def transfer(sender: str, receiver: str, amount: str):
    # Confidential token semantics: an amount above the sender's balance moves
    # an encrypted zero instead. Callers must use the returned handle.
    source = load(sender)
    assert initialized(source['balance']), 'Insufficient balance'

    provider = fhe()
    fits = provider.le(a=amount, b=source['balance'])
    zero = provider.as_encrypted(value=0)
    transferred = provider.select(cond=fits, a=amount, b=zero)

    source['balance'] = provider.sub(a=source['balance'], b=transferred)
    accounts[sender] = source

    target = load(receiver)
    if initialized(target['balance']):
        current = target['balance']
    else:
        current = zero
    target['balance'] = provider.add(a=current, b=transferred)
    accounts[receiver] = target

    share(source['balance'], sender, ctx.this)
    share(target['balance'], receiver, ctx.this)
    share(transferred, sender, receiver, ctx.this)
    return transferred

@export
def confidential_transfer(to: str, ciphertext: str, proof: str):
    assert to != ctx.caller, 'Cannot transfer to self'
    assert to != ctx.this, 'Use stake to deposit into the vault'

    amount = fhe().from_external(ciphertext=ciphertext, proof=proof, user=ctx.caller)
    transferred = transfer(ctx.caller, to, amount)

    ConfidentialTransferEvent({
        'from': ctx.caller,
        'to': to,
        'amount': transferred,
        'tx_id': next_tx()
    })
    return transferred

# -----------------------------------------------------------------------------
# Claim
# -----------------------------------------------------------------------------

@export
def claim():
    account = ctx.caller
    assert not load(account)['claimed'], 'Already claimed'

    minted = mint(account, CLAIM_AMOUNT)

    data = load(account)
    data['claimed'] = True
    accounts[account] = data

    metadata['total_supply'] = metadata['total_supply'] + CLAIM_AMOUNT
    metadata['claims'] = metadata['claims'] + 1

    ClaimedEvent({
        'account': account,
        'amount': minted,
        'tx_id': next_tx()
    })
    return minted

# -----------------------------------------------------------------------------
# Staking vault
# -----------------------------------------------------------------------------

@export
def stake(ciphertext: str, proof: str):
    account = ctx.caller
    provider = fhe()

    requested = provider.from_external(ciphertext=ciphertext, proof=proof, user=account)
    transferred = transfer(account, ctx.this, requested)

    data = load(account)
    if initialized(data['staked']):
        current = data['staked']
    else:
        current = provider.as_encrypted(value=0)

    data['staked'] = provider.add(a=current, b=transferred)
    accounts[account] = data
    share(data['staked'], account, ctx.this)

    StakedEvent({
        'account': account,
        'amount': transferred,
        'tx_id': next_tx()
    })
    return transferred

@export
def withdraw(ciphertext: str, proof: str):
    account = ctx.caller
    data = load(account)

    # Initialization state only; says nothing about the staked magnitude
    assert initialized(data['staked']), 'Nothing staked'

    provider = fhe()
    requested = provider.from_external(ciphertext=ciphertext, proof=proof, user=account)

    # Both operands exist before select; the host path is the same either way
    zero = provider.as_encrypted(value=0)
    can_withdraw = provider.le(a=requested, b=data['staked'])
    allowed = provider.select(cond=can_withdraw, a=requested, b=zero)

    data['staked'] = provider.sub(a=data['staked'], b=allowed)
    accounts[account] = data
    share(data['staked'], account, ctx.this)

    sent = transfer(ctx.this, account, allowed)

    WithdrawnEvent({
        'account': account,
        'amount': sent,
        'tx_id': next_tx()
    })
    return sent
