# kash_wallet/core/provisioning.py
import contextvars
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Tuple

from kash_wallet.core.config import WalletConfig
from kash_wallet.core.chains import ChainSpec, TokenSpec, get_chain
from kash_wallet.core.wallet_types import (
    WalletRecord, MnemonicRecord, ProvisioningResult, ProvisioningStatus,
    DerivedKeypair, WalletVariant, slot_key,
)
from kash_wallet.core.exceptions import (
    WalletError, DerivationError, EncryptionError, PersistenceConflictError,
    PartialProvisioningError, ProvisioningFailedError, BackupAccessDeniedError,
)
from kash_wallet.crypto.adapters import ChainAdapter, get_adapter
from kash_wallet.crypto.encryption import open_vault
from kash_wallet.crypto.mnemonic import MnemonicEngine, get_engine
from kash_wallet.interfaces.storage import WalletStore
from kash_wallet.utils.logging import logger, AuditEventType, LoggingContext
from kash_wallet.utils.secure import SecureString

Slot = Tuple[ChainSpec, WalletVariant]

class WalletProvisioner:
    """Creates, backfills and recovers the wallet set of one owner"""

    def __init__(self, config: WalletConfig, store: WalletStore, vault=None,
                 engine: Optional[MnemonicEngine] = None):
        self.config = config
        self.store = store
        self.vault = vault if vault is not None else open_vault(config)
        self.engine = engine or get_engine()

        self._adapters: Dict[Tuple[str, WalletVariant], ChainAdapter] = {}
        self._adapter_lock = threading.Lock()

    def _adapter(self, spec: ChainSpec, variant: WalletVariant) -> ChainAdapter:
        with self._adapter_lock:
            adapter = self._adapters.get((spec.key, variant))
            if adapter is None:
                adapter = get_adapter(spec, self.config.network, [variant])
                self._adapters[(spec.key, variant)] = adapter
            return adapter

    @staticmethod
    def _slot_key(spec: ChainSpec, variant: WalletVariant) -> str:
        return slot_key(spec.name, spec.symbol, variant)

    @staticmethod
    def _token_key(token: TokenSpec) -> str:
        return slot_key(get_chain(token.chain).name, token.symbol, WalletVariant.TOKEN)

    def expected_keys(self) -> List[str]:
        """Slot keys a fully provisioned owner holds"""
        keys = [self._slot_key(spec, variant) for spec, variant in self.config.slots()]
        keys.extend(self._token_key(token) for token in self.config.enabled_tokens())
        return keys

    def provision(self, owner_id: str, strict: bool = False) -> ProvisioningResult:
        """Idempotently ensure every configured wallet exists for ``owner_id``"""
        if not owner_id or not isinstance(owner_id, str):
            raise WalletError("owner_id is required")

        with LoggingContext(logger, owner_id=owner_id):
            result = self._provision(owner_id)

        if result.failures and not result.wallets:
            logger.audit(AuditEventType.PROVISIONING_PARTIAL, owner_id=owner_id,
                         outcome='failed', failed_slots=sorted(result.failures))
            raise ProvisioningFailedError(
                f"No wallet could be provisioned for {owner_id}; retry later", result=result)

        if result.failures:
            logger.audit(AuditEventType.PROVISIONING_PARTIAL, owner_id=owner_id,
                         outcome='partial', failed_slots=sorted(result.failures))
            if strict:
                raise PartialProvisioningError(
                    f"Provisioning incomplete for {len(result.failures)} slot(s)", result=result)
        return result

    def _provision(self, owner_id: str) -> ProvisioningResult:
        existing = self.store.get_wallets(owner_id)
        existing_keys = {record.key for record in existing}

        missing_slots = [(spec, variant) for spec, variant in self.config.slots()
                         if self._slot_key(spec, variant) not in existing_keys]
        missing_tokens = [token for token in self.config.enabled_tokens()
                          if self._token_key(token) not in existing_keys]

        if not missing_slots and not missing_tokens:
            logger.debug("All wallets already provisioned", wallets=len(existing))
            return ProvisioningResult(owner_id, ProvisioningStatus.EXISTING, wallets=existing)

        failures: Dict[str, str] = {}
        generated: Optional[str] = None
        new_records: List[WalletRecord] = []

        if missing_slots:
            phrase, generated = self._root_mnemonic(owner_id, has_wallets=bool(existing))
            if phrase is None:
                logger.error("Wallets exist without a stored mnemonic; refusing to create a new root",
                             missing=[self._slot_key(s, v) for s, v in missing_slots])
                for spec, variant in missing_slots:
                    failures[self._slot_key(spec, variant)] = "no mnemonic on record for this owner"
            else:
                secure_phrase = SecureString(phrase)
                logger.add_sensitive_data(phrase)
                try:
                    new_records, slot_failures = self._derive_slots(owner_id, secure_phrase, missing_slots)
                    failures.update(slot_failures)
                finally:
                    logger.remove_sensitive_data(phrase)
                    secure_phrase.wipe()

        token_records, token_failures = self._token_records(owner_id, missing_tokens,
                                                            existing + new_records)
        new_records.extend(token_records)
        failures.update(token_failures)

        try:
            self.store.put_wallets(new_records)
        except PersistenceConflictError as e:
            # A concurrent call for the same owner persisted first
            logger.warning("Concurrent provisioning detected; returning stored wallets",
                           conflicts=e.keys)
            stored = self.store.get_wallets(owner_id)
            stored_keys = {record.key for record in stored}
            # The winner's batch may itself have been partial
            remaining = {key: failures.get(key, "not provisioned by the concurrent call")
                         for key in self.expected_keys() if key not in stored_keys}
            status = ProvisioningStatus.PARTIAL if remaining else ProvisioningStatus.EXISTING
            return ProvisioningResult(owner_id, status, wallets=stored,
                                      failures=remaining, mnemonic=generated)

        if failures:
            status = ProvisioningStatus.PARTIAL
        elif existing:
            status = ProvisioningStatus.BACKFILLED
        else:
            status = ProvisioningStatus.CREATED

        logger.audit(AuditEventType.WALLETS_PROVISIONED, owner_id=owner_id,
                     status=status.value, created=[record.key for record in new_records])

        return ProvisioningResult(
            owner_id=owner_id,
            status=status,
            wallets=existing + new_records,
            created=new_records,
            failures=failures,
            mnemonic=generated,
        )

    def _root_mnemonic(self, owner_id: str, has_wallets: bool) -> Tuple[Optional[str], Optional[str]]:
        """(phrase to derive from, phrase if this call generated it)"""
        record = self.store.get_mnemonic(owner_id)
        if record is not None:
            return self._decrypt_mnemonic(record, owner_id), None

        if has_wallets:
            return None, None

        phrase = self.engine.generate(self.config.mnemonic_strength)
        candidate = MnemonicRecord(owner_id=owner_id,
                                   encrypted_mnemonic=self.vault.encrypt(phrase, owner_id))
        stored = self.store.put_mnemonic_if_absent(candidate)

        if stored is not candidate and stored.encrypted_mnemonic != candidate.encrypted_mnemonic:
            logger.info("Another call stored this owner's mnemonic first; deriving from it")
            return self._decrypt_mnemonic(stored, owner_id), None

        logger.audit(AuditEventType.MNEMONIC_GENERATED, owner_id=owner_id,
                     strength=self.config.mnemonic_strength)
        return phrase, phrase

    def _decrypt_mnemonic(self, record: MnemonicRecord, owner_id: str) -> str:
        phrase = self.vault.decrypt(record.encrypted_mnemonic, owner_id)
        if isinstance(phrase, bytes):
            phrase = phrase.decode('utf-8')
        # A corrupt root aborts the whole call
        return self.engine.ensure_valid(phrase)

    def _derive_slots(self, owner_id: str, secure_phrase: SecureString,
                      slots: List[Slot]) -> Tuple[List[WalletRecord], Dict[str, str]]:
        """Derive and encrypt every slot concurrently"""
        seed = SecureString(self.engine.to_seed(secure_phrase.get_text(), self.config.passphrase))
        records: Dict[str, WalletRecord] = {}
        failures: Dict[str, str] = {}

        try:
            workers = max(1, min(self.config.max_workers, len(slots)))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="kash-derive") as pool:
                # Workers inherit this call's log context
                futures = {
                    pool.submit(contextvars.copy_context().run,
                                self._derive_slot, owner_id, seed, spec, variant): (spec, variant)
                    for spec, variant in slots
                }
                for future in as_completed(futures):
                    spec, variant = futures[future]
                    key = self._slot_key(spec, variant)
                    try:
                        records[key] = future.result()
                    except (DerivationError, EncryptionError) as e:
                        logger.error(f"Wallet derivation failed: {e}", slot=key)
                        failures[key] = str(e)
        finally:
            seed.wipe()

        ordered = [records[self._slot_key(s, v)] for s, v in slots if self._slot_key(s, v) in records]
        return ordered, failures

    def _derive_slot(self, owner_id: str, seed: SecureString, spec: ChainSpec,
                     variant: WalletVariant) -> WalletRecord:
        keypair = self._adapter(spec, variant).derive(seed.get_value(), variant)
        private_hex = keypair.private_key.hex()
        logger.add_sensitive_data(private_hex)
        try:
            encrypted = self.vault.encrypt(private_hex, owner_id)
        finally:
            logger.remove_sensitive_data(private_hex)
            keypair.drop_private_key()

        logger.debug("Wallet derived", slot=keypair.slot, path=keypair.path, address=keypair.address)
        return WalletRecord(
            owner_id=owner_id,
            chain_family=spec.family,
            blockchain=spec.name,
            currency_symbol=spec.symbol,
            address=keypair.address,
            wallet_variant=variant,
            encrypted_key=encrypted,
            derivation_path=keypair.path,
        )

    def _token_records(self, owner_id: str, tokens: List[TokenSpec],
                       wallets: List[WalletRecord]) -> Tuple[List[WalletRecord], Dict[str, str]]:
        """Token wallets share the native address and hold no key"""
        by_key = {record.key: record for record in wallets}
        records = []
        failures = {}

        for token in tokens:
            host = get_chain(token.chain)
            native = by_key.get(self._slot_key(host, host.default_variant))
            if native is None:
                failures[self._token_key(token)] = f"{host.name} native wallet unavailable"
                continue
            records.append(WalletRecord(
                owner_id=owner_id,
                chain_family=host.family,
                blockchain=host.name,
                currency_symbol=token.symbol,
                address=native.address,
                wallet_variant=WalletVariant.TOKEN,
                encrypted_key=None,
                derivation_path=native.derivation_path,
            ))
        return records, failures

    def reveal_mnemonic(self, owner_id: str, verify: Callable[[], bool]) -> str:
        """Decrypt the backup phrase after the caller's password re-check passes"""
        try:
            verified = verify() is True
        except Exception as e:
            logger.audit(AuditEventType.MNEMONIC_REVEAL_DENIED, owner_id=owner_id,
                         outcome='error', reason=type(e).__name__)
            raise BackupAccessDeniedError(f"Re-verification failed: {e}") from e

        if not verified:
            logger.audit(AuditEventType.MNEMONIC_REVEAL_DENIED, owner_id=owner_id, outcome='denied')
            logger.log_security_event("mnemonic_reveal_denied", severity="medium", owner_id=owner_id)
            raise BackupAccessDeniedError("Password re-verification required to reveal the mnemonic")

        record = self.store.get_mnemonic(owner_id)
        if record is None:
            raise WalletError(f"No mnemonic on record for {owner_id}")

        phrase = self._decrypt_mnemonic(record, owner_id)
        logger.audit(AuditEventType.MNEMONIC_REVEALED, owner_id=owner_id)
        return phrase

    def derive_wallets(self, mnemonic: str, passphrase: Optional[str] = None) -> List[DerivedKeypair]:
        """Derive every configured slot for a phrase without touching storage"""
        return derive_wallets(self.config, mnemonic, passphrase, self.engine)

    def rederive(self, owner_id: str) -> Dict[str, Dict[str, str]]:
        """Recompute stored addresses from the stored mnemonic; returns mismatches"""
        record = self.store.get_mnemonic(owner_id)
        if record is None:
            raise WalletError(f"No mnemonic on record for {owner_id}")

        phrase = self._decrypt_mnemonic(record, owner_id)
        seed = SecureString(self.engine.to_seed(phrase, self.config.passphrase))
        derived: Dict[str, str] = {}
        mismatches: Dict[str, Dict[str, str]] = {}

        try:
            wallets = self.store.get_wallets(owner_id)
            for wallet in wallets:
                if wallet.wallet_variant == WalletVariant.TOKEN:
                    continue
                spec = get_chain(wallet.blockchain)
                keypair = self._adapter(spec, wallet.wallet_variant).derive(
                    seed.get_value(), wallet.wallet_variant)
                keypair.drop_private_key()
                derived[slot_key(spec.name, spec.symbol, wallet.wallet_variant)] = keypair.address
        finally:
            seed.wipe()

        for wallet in wallets:
            if wallet.wallet_variant == WalletVariant.TOKEN:
                host = get_chain(wallet.blockchain)
                expected = derived.get(self._slot_key(host, host.default_variant))
            else:
                expected = derived.get(wallet.key)
            if expected != wallet.address:
                mismatches[wallet.key] = {'stored': wallet.address, 'derived': expected or ''}

        if mismatches:
            logger.log_security_event("address_mismatch", severity="high",
                                      owner_id=owner_id, slots=sorted(mismatches))
        return mismatches

def derive_wallets(config: WalletConfig, mnemonic: str, passphrase: Optional[str] = None,
                   engine: Optional[MnemonicEngine] = None) -> List[DerivedKeypair]:
    """Stateless derivation of every configured slot; callers drop the private keys"""
    engine = engine or get_engine()
    phrase = engine.ensure_valid(mnemonic)
    seed = SecureString(engine.to_seed(phrase, config.passphrase if passphrase is None else passphrase))
    try:
        return [get_adapter(spec, config.network, [variant]).derive(seed.get_value(), variant)
                for spec, variant in config.slots()]
    finally:
        seed.wipe()
