"""Capacity-bounded, address-keyed conversation store.

Each owner address derives one storage address under a program id. That
address holds a fixed number of conversation slots, persisted with a
fixed-layout binary codec:

    codec        Writer/Reader primitives, encode/decode
    state        Message, Conversation, Conversations (slot store)
    address      storage-address derivation
    validator    storage-account gate
    instruction  command payloads + router
    ledger       file-backed host for accounts
"""
