"""Proxied functions reachable through `RemoteDataService.invoke_function`."""
from horizon.app.functions import initiate_payment, send_sms
from horizon.app.integrations.remote import INITIATE_PAYMENT, SEND_SMS

FUNCTIONS = {
    SEND_SMS: send_sms.handle,
    INITIATE_PAYMENT: initiate_payment.handle,
}
