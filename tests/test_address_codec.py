from __future__ import annotations

import pytest

from conftest import ALICE, ALICE_EVM, ALICE_PUBKEY, BOB, EVM_A
from selendra_sdk.address import (AddressCodec, UnifiedAddress, batch_convert,
                                  evm_to_substrate, normalize_address,
                                  substrate_to_evm)
from selendra_sdk.errors import InvalidAddressFormat


def test_substrate_to_evm_takes_first_20_key_bytes():
    evm = substrate_to_evm(ALICE)
    assert evm == ALICE_EVM
    assert len(evm) == 42
    assert evm == "0x" + ALICE_PUBKEY[:20].hex()


def test_public_key_and_account_id_hex(codec: AddressCodec):
    assert codec.public_key(ALICE) == ALICE_PUBKEY
    assert codec.account_id_hex(ALICE) == "0x" + ALICE_PUBKEY.hex()


def test_evm_to_substrate_pads_with_zero_bytes(codec: AddressCodec):
    ss58 = evm_to_substrate(EVM_A, 204)
    key = codec.public_key(ss58)
    assert key == bytes.fromhex(EVM_A[2:]) + b"\x00" * 12
    # prefix 204 decodes back through a full checksum check
    assert codec.normalize(ss58) == ss58


def test_evm_to_substrate_respects_prefix(codec: AddressCodec):
    generic = codec.evm_to_substrate(EVM_A, ss58_prefix=42)
    selendra = codec.evm_to_substrate(EVM_A)
    assert generic != selendra
    assert generic.startswith("5")
    assert codec.public_key(generic) == codec.public_key(selendra)


def test_round_trip_holds_when_low_12_bytes_are_zero(codec: AddressCodec):
    account_id = bytes(range(1, 21)) + b"\x00" * 12
    ss58 = codec.encode_account_id(account_id)
    assert codec.evm_to_substrate(codec.substrate_to_evm(ss58)) == ss58


def test_round_trip_differs_for_ordinary_keys(codec: AddressCodec):
    back = codec.evm_to_substrate(codec.substrate_to_evm(ALICE))
    assert codec.public_key(back) != ALICE_PUBKEY
    assert codec.public_key(back)[:20] == ALICE_PUBKEY[:20]


def test_evm_round_trip_always_holds(codec: AddressCodec):
    assert codec.substrate_to_evm(codec.evm_to_substrate(EVM_A)) == EVM_A.lower()


@pytest.mark.parametrize(
    "bad",
    [
        "",
        "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb",  # 39 hex chars
        "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEbZZ",
        "742d35Cc6634C0532925a3b844Bc9e7595f0bEb0",
        ALICE,
    ],
)
def test_evm_to_substrate_rejects_malformed(bad):
    with pytest.raises(InvalidAddressFormat):
        evm_to_substrate(bad)


@pytest.mark.parametrize(
    "bad",
    [
        "",
        "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQZ",  # checksum broken
        "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKut0Y",  # '0' is not base58
        EVM_A,
        "not an address",
    ],
)
def test_substrate_to_evm_rejects_malformed(bad):
    with pytest.raises(InvalidAddressFormat):
        substrate_to_evm(bad)


def test_invalid_address_format_is_a_value_error():
    with pytest.raises(ValueError):
        substrate_to_evm("garbage")


def test_out_of_range_prefix_is_rejected(codec: AddressCodec):
    with pytest.raises(InvalidAddressFormat):
        codec.evm_to_substrate(EVM_A, ss58_prefix=46)
    with pytest.raises(InvalidAddressFormat):
        codec.evm_to_substrate(EVM_A, ss58_prefix=20000)


def test_batch_convert_keeps_length_and_order():
    inputs = [ALICE, EVM_A, BOB, ALICE_EVM]
    out = batch_convert(inputs, "evm")
    assert len(out) == len(inputs)
    assert out[0] == ALICE_EVM
    assert out[1] == EVM_A.lower()
    assert out[2] == substrate_to_evm(BOB)
    assert out[3] == ALICE_EVM


def test_batch_convert_to_substrate(codec: AddressCodec):
    out = codec.batch_convert([EVM_A, ALICE], "substrate")
    assert out == [codec.evm_to_substrate(EVM_A), ALICE]


def test_batch_convert_fails_on_any_bad_entry():
    with pytest.raises(InvalidAddressFormat):
        batch_convert([ALICE, "nope"], "evm")


def test_convert_rejects_unknown_target(codec: AddressCodec):
    with pytest.raises(ValueError):
        codec.convert(ALICE, "bitcoin")  # type: ignore[arg-type]


def test_normalize_address():
    assert normalize_address(EVM_A) == EVM_A.lower()
    reencoded = normalize_address(ALICE)
    assert reencoded != ALICE
    assert AddressCodec().public_key(reencoded) == ALICE_PUBKEY
    assert normalize_address(ALICE, ss58_prefix=42) == ALICE


def test_unified_address_lazy_conversion_and_equality(codec: AddressCodec):
    from_substrate = UnifiedAddress.parse(ALICE, codec=codec)
    from_evm = UnifiedAddress.parse(ALICE_EVM.upper().replace("0X", "0x"), codec=codec)
    assert from_substrate.evm == ALICE_EVM
    assert from_evm.evm == ALICE_EVM
    assert from_substrate == from_evm
    assert hash(from_substrate) == hash(from_evm)
    assert from_substrate.both() == {"substrate": ALICE, "evm": ALICE_EVM}
    assert from_evm.substrate == codec.evm_to_substrate(ALICE_EVM)


def test_unified_address_is_immutable(codec: AddressCodec):
    ua = UnifiedAddress.parse(EVM_A, codec=codec)
    with pytest.raises(AttributeError):
        ua.source = ALICE  # type: ignore[misc]


def test_unified_address_validates_eagerly():
    with pytest.raises(InvalidAddressFormat):
        UnifiedAddress.parse("5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQZ")


class _CountingProvider:
    def __init__(self, inner):
        self.inner = inner
        self.decodes = 0

    def ss58_decode(self, address):
        self.decodes += 1
        return self.inner.ss58_decode(address)

    def ss58_encode(self, public_key, prefix):
        return self.inner.ss58_encode(public_key, prefix)

    def keccak256(self, data):
        return self.inner.keccak256(data)


def test_codec_uses_injected_provider(codec: AddressCodec):
    provider = _CountingProvider(codec.provider)
    counted = AddressCodec(provider=provider)
    assert counted.substrate_to_evm(ALICE) == ALICE_EVM
    assert provider.decodes == 1
