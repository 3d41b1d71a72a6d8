"""
MJML Email Templates
Templates for document signing and registration notices, compiled to HTML by email_service
"""

from typing import Optional

# Brand colors - Indigo/Slate scheme
THEME = {
    "primary": "#4f46e5",
    "primary_dark": "#4338ca",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="32px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              Sent by CampHub on behalf of the camp organizer.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def signature_request_template(
    recipient_name: str,
    organization_name: str,
    document_title: str,
    sign_url: str,
    message: Optional[str] = None,
    expires_on: Optional[str] = None,
    is_reminder: bool = False,
) -> str:
    """Invitation (or reminder) to review and sign a document"""
    intro = (
        f"This is a reminder that <strong>{document_title}</strong> is still waiting for your signature."
        if is_reminder
        else f"{organization_name} has asked you to review and sign <strong>{document_title}</strong>."
    )
    message_section = (
        f"""
    <mj-text color="{THEME['text_muted']}" font-style="italic">
      "{message}"
    </mj-text>
    """
        if message
        else ""
    )
    expiry_section = (
        f"""
    <mj-text font-size="14px" color="{THEME['warning']}">
      This link expires on {expires_on}.
    </mj-text>
    """
        if expires_on
        else ""
    )

    content = f"""
    <mj-text>
      Hi {recipient_name},
    </mj-text>

    <mj-text>
      {intro}
    </mj-text>
    {message_section}
    {expiry_section}
    """

    return get_base_template(
        title="Reminder: Signature Needed" if is_reminder else "Signature Requested",
        preview_text=f"{organization_name} needs your signature on {document_title}",
        content_sections=content,
        cta_url=sign_url,
        cta_label="Review & Sign",
    )


def document_signed_template(requester_name: str, signer_name: str, document_title: str) -> str:
    content = f"""
    <mj-text>
      Hi {requester_name},
    </mj-text>

    <mj-text>
      <strong>{signer_name}</strong> has signed <strong>{document_title}</strong>.
      The signature and its audit record are available in the document's audit trail.
    </mj-text>
    """

    return get_base_template(
        title="Document Signed",
        preview_text=f"{signer_name} signed {document_title}",
        content_sections=content,
    )


def document_declined_template(requester_name: str, signer_name: str, document_title: str) -> str:
    content = f"""
    <mj-text>
      Hi {requester_name},
    </mj-text>

    <mj-text>
      <strong>{signer_name}</strong> declined to sign <strong>{document_title}</strong>.
      You can follow up with them directly or send a new request.
    </mj-text>
    """

    return get_base_template(
        title="Signature Declined",
        preview_text=f"{signer_name} declined {document_title}",
        content_sections=content,
    )


# ============================================
# Registration notices
# ============================================


def registration_confirmation_template(
    parent_name: str,
    child_name: str,
    camp_name: str,
    camp_dates: Optional[str] = None,
    camp_location: Optional[str] = None,
) -> str:
    details = "".join(
        f"""
    <mj-text padding="0 0 4px 0">
      <strong>{label}:</strong> {value}
    </mj-text>
    """
        for label, value in (("Dates", camp_dates), ("Location", camp_location))
        if value
    )

    content = f"""
    <mj-text>
      Hi {parent_name},
    </mj-text>

    <mj-text>
      <strong>{child_name}</strong> is registered for <strong>{camp_name}</strong>.
    </mj-text>
    {details}
    <mj-divider border-color="{THEME['border']}" border-width="1px" padding="16px 0" />
    <mj-text font-size="14px" color="{THEME['text_muted']}">
      If the camp requires signed agreements, you will receive a separate email for each one.
    </mj-text>
    """

    return get_base_template(
        title="Registration Confirmed",
        preview_text=f"{child_name} is registered for {camp_name}",
        content_sections=content,
    )


def waitlist_notification_template(
    parent_name: str, child_name: str, camp_name: str, status: str
) -> str:
    """Waitlist notice: ``added`` when placed on the list, ``spot_available`` on promotion"""
    if status == "spot_available":
        title = "A Spot Opened Up"
        body = (
            f"Good news! A spot opened up in <strong>{camp_name}</strong> and "
            f"<strong>{child_name}</strong> has been moved off the waitlist into the camp."
        )
    else:
        title = "Added to the Waitlist"
        body = (
            f"<strong>{camp_name}</strong> is currently full, so <strong>{child_name}</strong> "
            "has been added to the waitlist. We'll email you as soon as a spot opens up."
        )

    content = f"""
    <mj-text>
      Hi {parent_name},
    </mj-text>

    <mj-text>
      {body}
    </mj-text>
    """

    return get_base_template(
        title=title,
        preview_text=f"{camp_name}: {title.lower()}",
        content_sections=content,
    )
