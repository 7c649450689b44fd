"""Controller for the contact-us endpoint."""

import logging
from typing import Callable

from werkzeug.datastructures import MultiDict

from ..auth import AuthorizationGate
from ..exceptions import AuthorizationFailure, ValidationFailure
from .forms import ContactForm
from .users import ResponseData

logger = logging.getLogger(__name__)

HTTP_202_ACCEPTED = 202


def contact(params: MultiDict, gate: AuthorizationGate,
            deliver: Callable[[dict], None]) -> ResponseData:
    """
    Pass a message on to the feedback address.

    Only clients trusted with the password grant may do this, which keeps
    out most spam.
    """
    form = ContactForm(params)
    if not gate.client_permitted_password_grant(form.client_id.data,
                                                form.client_secret.data or ''):
        raise AuthorizationFailure('This client cannot perform this action')

    missing = form.missing()
    if missing:
        fields = ', '.join(f"'{name}'" for name in missing)
        if len(missing) == 1:
            message = f'The field {fields} is required.'
        else:
            message = f'The fields {fields} are required.'
        raise ValidationFailure(message)

    deliver(form.to_dict())
    logger.debug('Contact message accepted from client %s',
                 form.client_id.data)
    return {}, HTTP_202_ACCEPTED, {}
