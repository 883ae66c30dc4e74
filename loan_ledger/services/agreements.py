"""Terms catalogue and the record of which terms users and applications accepted"""

from typing import List, Optional

from sqlalchemy.orm import Session

from loan_ledger.domain.exceptions import NotFoundError, ValidationError
from loan_ledger.domain.models import AgreementStatus, MissingTerms
from loan_ledger.infrastructure.database.models import ApplicationTermsAcceptance, Terms, TermsAgreement
from loan_ledger.infrastructure.database.repositories import (
    ApplicationTermsRepository,
    TermsAgreementRepository,
    TermsRepository,
)
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.infrastructure.observability.logging import log_ledger_event
from loan_ledger.services.applications import require_application


def _require_user(user_id: str) -> str:
    if user_id is None or not str(user_id).strip():
        raise ValidationError("User ID is required")
    return str(user_id).strip()


def _distinct_terms_ids(terms_ids: List[int]) -> List[int]:
    if not terms_ids:
        raise ValidationError("At least one terms ID is required")
    # Keep caller order, drop repeats
    return list(dict.fromkeys(terms_ids))


def create_terms(
    store: LedgerStore,
    name: str,
    detail_url: str,
    content: Optional[str] = None,
    version: Optional[str] = None,
    is_required: bool = True,
) -> Terms:
    if not name or not name.strip():
        raise ValidationError("Name is required")
    if not detail_url or not detail_url.strip():
        raise ValidationError("Terms detail URL is required")

    terms = store.run_transaction(
        lambda db: TermsRepository(db).create(
            name=name.strip(),
            detail_url=detail_url.strip(),
            content=content,
            version=version,
            is_required=is_required,
        )
    )
    log_ledger_event("terms_created", terms_id=terms.id, version=version, is_required=is_required)
    return terms


def require_terms(db: Session, terms_id: int) -> Terms:
    terms = TermsRepository(db).get(terms_id)
    if terms is None:
        raise NotFoundError(f"Terms with ID {terms_id} not found")
    return terms


def get_terms(store: LedgerStore, terms_id: int) -> Terms:
    return store.run_transaction(lambda db: require_terms(db, terms_id))


def list_terms(store: LedgerStore) -> List[Terms]:
    return store.run_transaction(lambda db: TermsRepository(db).list())


def update_terms(
    store: LedgerStore,
    terms_id: int,
    name: Optional[str] = None,
    detail_url: Optional[str] = None,
    content: Optional[str] = None,
    version: Optional[str] = None,
    is_required: Optional[bool] = None,
) -> Terms:
    if name is not None and not name.strip():
        raise ValidationError("Name cannot be blank")
    if detail_url is not None and not detail_url.strip():
        raise ValidationError("Terms detail URL cannot be blank")

    def _update(db: Session) -> Terms:
        terms = require_terms(db, terms_id)
        return TermsRepository(db).update(
            terms,
            name=name,
            detail_url=detail_url,
            content=content,
            version=version,
            is_required=is_required,
        )

    return store.run_transaction(_update)


def retire_terms(store: LedgerStore, terms_id: int) -> None:
    def _retire(db: Session) -> None:
        TermsRepository(db).retire(require_terms(db, terms_id))

    store.run_transaction(_retire)
    log_ledger_event("terms_retired", terms_id=terms_id)


def record_agreement(store: LedgerStore, user_id: str, terms_ids: List[int]) -> List[TermsAgreement]:
    """
    Replace the user's accepted terms with terms_ids.

    The previous set is retired and the new records created in one
    transaction, so a failure (e.g. an unknown terms id) leaves the previous
    set in place.

    Raises:
        ValidationError: blank user id or empty terms list
        NotFoundError: a terms id doesn't exist
    """
    user_id = _require_user(user_id)
    terms_ids = _distinct_terms_ids(terms_ids)

    def _record(db: Session) -> List[TermsAgreement]:
        for terms_id in terms_ids:
            require_terms(db, terms_id)

        repo = TermsAgreementRepository(db)
        for agreement in repo.list_for_user(user_id):
            repo.retire(agreement)

        return [repo.create(user_id=user_id, terms_id=terms_id) for terms_id in terms_ids]

    agreements = store.run_transaction(_record)
    log_ledger_event("terms_agreement_recorded", user_id=user_id, terms_ids=terms_ids)
    return agreements


def list_user_agreements(store: LedgerStore, user_id: str) -> List[TermsAgreement]:
    user_id = _require_user(user_id)
    return store.run_transaction(lambda db: TermsAgreementRepository(db).list_for_user(user_id))


def check_required_agreements(store: LedgerStore, user_id: str) -> AgreementStatus:
    """Compare the user's accepted terms against every required terms document"""
    user_id = _require_user(user_id)

    def _check(db: Session) -> AgreementStatus:
        required = TermsRepository(db).list_required()
        accepted = {a.terms_id for a in TermsAgreementRepository(db).list_for_user(user_id)}
        missing = [MissingTerms(terms_id=t.id, name=t.name) for t in required if t.id not in accepted]
        return AgreementStatus(complete=not missing, missing=missing)

    return store.run_transaction(_check)


def accept_application_terms(
    store: LedgerStore,
    application_id: int,
    terms_ids: List[int],
) -> List[ApplicationTermsAcceptance]:
    """
    Record terms accepted as part of an application.

    Terms already accepted for the application are not recorded twice.

    Raises:
        ValidationError: empty list, or one or more terms don't exist
        NotFoundError: application missing
    """
    terms_ids = _distinct_terms_ids(terms_ids)

    def _accept(db: Session) -> List[ApplicationTermsAcceptance]:
        require_application(db, application_id)
        found = {t.id for t in TermsRepository(db).get_many(terms_ids)}
        unknown = [terms_id for terms_id in terms_ids if terms_id not in found]
        if unknown:
            raise ValidationError(f"One or more terms do not exist: {unknown}")

        repo = ApplicationTermsRepository(db)
        already = {a.terms_id for a in repo.list_for_application(application_id)}
        return [
            repo.create(application_id=application_id, terms_id=terms_id)
            for terms_id in terms_ids
            if terms_id not in already
        ]

    acceptances = store.run_transaction(_accept)
    log_ledger_event("application_terms_accepted", application_id, terms_ids=[a.terms_id for a in acceptances])
    return acceptances


def list_application_terms(store: LedgerStore, application_id: int) -> List[ApplicationTermsAcceptance]:
    def _list(db: Session) -> List[ApplicationTermsAcceptance]:
        require_application(db, application_id)
        return ApplicationTermsRepository(db).list_for_application(application_id)

    return store.run_transaction(_list)
