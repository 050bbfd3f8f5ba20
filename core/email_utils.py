import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, get_connection
from django.template import TemplateDoesNotExist
from django.template.loader import render_to_string

from core.models import OrganizationSettings, Organization

logger = logging.getLogger(__name__)


def get_org_settings(org: Organization) -> OrganizationSettings | None:
    try:
        return org.app_settings
    except OrganizationSettings.DoesNotExist:
        return None


def get_org_connection(org_settings: OrganizationSettings | None):
    """Conexión SMTP propia del tenant si la tiene configurada; si no, la global."""
    if org_settings and org_settings.smtp_host:
        return get_connection(
            backend="django.core.mail.backends.smtp.EmailBackend",
            host=org_settings.smtp_host,
            port=org_settings.smtp_port or 587,
            username=org_settings.smtp_user or None,
            password=org_settings.smtp_password or None,
            use_tls=org_settings.smtp_use_tls,
            fail_silently=False,
        )
    return None


def send_org_email(
    organization: Organization,
    to_emails,
    subject: str,
    template_base_name: str,
    context: dict | None = None,
    reply_to: str | None = None,
    attachments=None,
):
    """
    template_base_name: ej. "emails/invoice_sent" → buscará
    - templates/emails/invoice_sent.txt
    - templates/emails/invoice_sent.html (opcional)
    attachments: lista de tuplas (filename, content, mimetype)
    """
    context = context or {}
    context["organization"] = organization

    org_settings = get_org_settings(organization)
    context.setdefault("company_name", (org_settings.company_name if org_settings else "") or organization.name)

    text_body = render_to_string(f"{template_base_name}.txt", context)
    try:
        html_body = render_to_string(f"{template_base_name}.html", context)
    except TemplateDoesNotExist:
        html_body = None

    if org_settings:
        from_email = org_settings.get_from_address()
        bcc = [org_settings.bcc_on_outgoing] if org_settings.bcc_on_outgoing else None
    else:
        from_email = getattr(settings, "DEFAULT_FROM_EMAIL", "no-reply@facturacion.local")
        bcc = None

    reply_to_list = []
    if reply_to:
        reply_to_list.append(reply_to)
    elif org_settings and org_settings.reply_to_email:
        reply_to_list.append(org_settings.reply_to_email)

    to_list = list(to_emails) if isinstance(to_emails, (list, tuple)) else [to_emails]

    msg = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=from_email,
        to=to_list,
        reply_to=reply_to_list or None,
        bcc=bcc,
        connection=get_org_connection(org_settings),
    )

    if html_body:
        msg.attach_alternative(html_body, "text/html")
    for filename, content, mimetype in attachments or []:
        msg.attach(filename, content, mimetype)

    sent = msg.send()
    logger.info("Email '%s' enviado a %s (org=%s)", subject, ", ".join(to_list), organization.slug)
    return sent
