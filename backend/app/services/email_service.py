"""
Email Service for Skilltori
===========================
Transactional mail over SMTP:
- Email verification on signup
- Password reset (Bengali)
- Job and campus ambassador application receipts
- Workshop and course payment confirmations

Every send passes through a process-wide ``SendGate`` so messages start at
least ``EMAIL_MIN_INTERVAL_SECONDS`` apart. The transport is verified before
the first real send; a failed verification switches the service into fallback
mode, where messages are only logged and reported as delivered. Fallback
mode is permanent for the life of the process.

``send_email`` never raises. It returns False only when a send was
attempted and failed.
"""

import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import formataddr
from typing import Optional
from datetime import datetime
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.logging_config import logger
from app.services.send_gate import SendGate
from app.services.pricing_service import format_price


class SMTPTransport:
    """
    Thin wrapper over aiosmtplib; port 465 uses implicit TLS.

    The connect timeout also bounds the server greeting.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str],
        password: Optional[str],
        connect_timeout: float = 60.0,
        socket_timeout: float = 60.0,
    ):
        self.host = host
        self.port = port
        self.username = username or None
        self.password = password or None
        self.connect_timeout = connect_timeout
        self.socket_timeout = socket_timeout

    @property
    def use_tls(self) -> bool:
        return self.port == 465

    async def verify(self) -> None:
        """Connect and authenticate, then hang up. Raises on any failure."""
        client = aiosmtplib.SMTP(
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            use_tls=self.use_tls,
            timeout=self.connect_timeout,
        )
        await client.connect()
        await client.quit()

    async def send(self, message: MIMEMultipart) -> None:
        await aiosmtplib.send(
            message,
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            use_tls=self.use_tls,
            timeout=self.socket_timeout,
        )


def _local(dt: datetime) -> datetime:
    return dt.replace(tzinfo=ZoneInfo("UTC")).astimezone(ZoneInfo(settings.DISPLAY_TIMEZONE))


def format_workshop_date(start: Optional[datetime]) -> str:
    """e.g. Saturday, March 8, 2025"""
    if start is None:
        return "TBA"
    local = _local(start)
    return f"{local:%A, %B} {local.day}, {local:%Y}"


def format_workshop_time(start: Optional[datetime], end: Optional[datetime]) -> str:
    """e.g. 08:00 PM - 10:00 PM"""
    if start is None:
        return "TBA"
    text = f"{_local(start):%I:%M %p}"
    if end is not None:
        text = f"{text} - {_local(end):%I:%M %p}"
    return text


class EmailService:
    """Rate-gated SMTP email service"""

    def __init__(self, transport: Optional[SMTPTransport] = None, gate: Optional[SendGate] = None):
        self.transport = transport or SMTPTransport(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASS,
            connect_timeout=settings.SMTP_CONNECTION_TIMEOUT,
            socket_timeout=settings.SMTP_SOCKET_TIMEOUT,
        )
        self.gate = gate or SendGate(settings.EMAIL_MIN_INTERVAL_SECONDS)
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.reply_to = settings.EMAIL_REPLY_TO
        self.site_url = settings.SITE_URL.rstrip("/")
        self.fallback_mode = False
        self.verified = False

        if not self.is_configured:
            logger.warning("[Email] SMTP credentials missing, emails will be logged only")
            self.fallback_mode = True

    @property
    def is_configured(self) -> bool:
        return bool(self.transport.host and self.transport.username and self.transport.password)

    def _build_message(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = formataddr((self.from_name, self.from_email))
        message["To"] = to_email
        message["Subject"] = subject
        message["Reply-To"] = self.reply_to

        if text_content:
            message.attach(MIMEText(text_content, "plain", "utf-8"))
        message.attach(MIMEText(html_content, "html", "utf-8"))
        return message

    def _log_fallback(self, to_email: str, subject: str, text_content: Optional[str]) -> None:
        logger.info(
            f"[Email/Fallback] To: {to_email} | Subject: {subject}\n{text_content or ''}"
        )
        logger.log_email_event(to_email, subject, success=True, fallback=True)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email, waiting for the send gate first.

        Returns True when sent or logged in fallback mode, False when the
        transport failed mid-send.
        """
        try:
            await self.gate.wait()

            if self.fallback_mode:
                self._log_fallback(to_email, subject, text_content)
                return True

            if not self.verified:
                try:
                    await self.transport.verify()
                except Exception as e:
                    logger.error(f"[Email/SMTP] Verification failed, switching to fallback mode: {e}")
                    self.fallback_mode = True
                    self._log_fallback(to_email, subject, text_content)
                    return True
                self.verified = True
                logger.info("[Email/SMTP] Transport verified")

            message = self._build_message(to_email, subject, html_content, text_content)
            await self.transport.send(message)

            logger.log_email_event(to_email, subject, success=True)
            return True

        except Exception as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}", exc_info=True)
            logger.log_email_event(to_email, subject, success=False)
            self.fallback_mode = True
            logger.warning("[Email] Switched to fallback mode, later emails will be logged instead of sent")
            return False

    # ==================== TEMPLATES ====================

    def _layout(self, title: str, heading: str, subheading: str, accent: str, body: str) -> str:
        year = datetime.utcnow().year
        return f"""
        <!DOCTYPE html>
        <html lang="en">
        <head>
            <meta charset="UTF-8">
            <title>{title}</title>
            <style>
                body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #1f2937; background: #f9fafb; padding: 20px; }}
                .container {{ max-width: 600px; margin: 0 auto; background: #ffffff; border-radius: 16px; overflow: hidden; }}
                .header {{ background: {accent}; color: white; padding: 40px 30px; text-align: center; }}
                .content {{ padding: 30px; }}
                .details {{ background: #f3f4f6; padding: 20px; border-radius: 10px; margin: 20px 0; }}
                .button {{ display: inline-block; background: #2563eb; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600; margin: 20px 0; }}
                .footer {{ text-align: center; padding: 20px; font-size: 12px; color: #6b7280; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>{heading}</h1>
                    <h2>{subheading}</h2>
                </div>
                <div class="content">
                    {body}
                </div>
                <div class="footer">
                    <p>&copy; {year} Skilltori. All rights reserved.</p>
                    <p>Empowering students with practical skills for the digital age.</p>
                </div>
            </div>
        </body>
        </html>
        """

    def _contact_html(self) -> str:
        return f"""
                    <div class="details">
                        <h3>📞 Contact Information</h3>
                        <p>Phone: {settings.CONTACT_PHONE}<br>
                        Email: {settings.CONTACT_EMAIL}<br>
                        Address: {settings.CONTACT_ADDRESS}</p>
                    </div>
        """

    def _contact_text(self) -> str:
        return (
            "Need to reach us?\n"
            f"Phone: {settings.CONTACT_PHONE}\n"
            f"Email: {settings.CONTACT_EMAIL}\n"
            f"Address: {settings.CONTACT_ADDRESS}\n"
        )

    async def send_verification_email(self, to_email: str, user_name: str, verification_token: str) -> bool:
        """Send email verification link to a new user"""
        verification_link = f"{self.site_url}/auth/verify-email?token={verification_token}"
        subject = "Verify your email - Skilltori"

        html_content = self._layout(
            subject,
            "Welcome to Skilltori!",
            "Confirm your email address",
            "linear-gradient(135deg, #2563eb 0%, #1d4ed8 100%)",
            f"""
                    <p>Hi {user_name or 'there'},</p>
                    <p>Thanks for signing up! Please confirm your email address to finish creating your account.</p>
                    <p style="text-align: center;"><a href="{verification_link}" class="button">Verify Email Address</a></p>
                    <p style="font-size: 14px; color: #6b7280;">Or paste this link in your browser:<br>{verification_link}</p>
                    <p style="font-size: 14px; color: #6b7280;">This link expires in {settings.EMAIL_VERIFICATION_EXPIRE_HOURS} hours.</p>
            """,
        )

        text_content = f"""Welcome to Skilltori!

Hi {user_name or 'there'},

Please confirm your email address by opening the link below:

{verification_link}

This link expires in {settings.EMAIL_VERIFICATION_EXPIRE_HOURS} hours.

The Skilltori Team
"""
        return await self.send_email(to_email, subject, html_content, text_content)

    async def send_password_reset_email(self, to_email: str, reset_url: str) -> bool:
        """Password reset link, in Bengali"""
        subject = "পাসওয়ার্ড রিসেট করুন - Skilltori"

        html_content = self._layout(
            subject,
            "পাসওয়ার্ড রিসেট করুন",
            "আপনার শিক্ষার যাত্রা শুরু করুন",
            "linear-gradient(135deg, #2563eb 0%, #7c3aed 100%)",
            f"""
                    <p>আপনার Skilltori একাউন্টের জন্য পাসওয়ার্ড রিসেটের অনুরোধ পেয়েছি।</p>
                    <p>নিচের বাটনে ক্লিক করে আপনার নতুন পাসওয়ার্ড সেট করুন:</p>
                    <p style="text-align: center;"><a href="{reset_url}" class="button">পাসওয়ার্ড রিসেট করুন</a></p>
                    <div class="details">
                        <strong>🔒 নিরাপত্তা নোট</strong><br>
                        • যদি আপনি এই অনুরোধ না করে থাকেন, তাহলে এই ইমেইলটি উপেক্ষা করুন<br>
                        • আপনার পাসওয়ার্ড কখনো কারো সাথে শেয়ার করবেন না
                    </div>
                    <p><strong>লিংক কাজ করছে না?</strong></p>
                    <p>নিচের লিংকটি কপি করে আপনার ব্রাউজারে পেস্ট করুন:</p>
                    <p style="word-break: break-all; font-family: monospace; font-size: 12px;">{reset_url}</p>
            """,
        )

        text_content = f"""পাসওয়ার্ড রিসেট করুন - Skilltori

আপনার Skilltori একাউন্টের জন্য পাসওয়ার্ড রিসেটের অনুরোধ পেয়েছি।

নিচের লিংকে ক্লিক করে আপনার নতুন পাসওয়ার্ড সেট করুন:
{reset_url}

যদি আপনি এই অনুরোধ না করে থাকেন, তাহলে এই ইমেইলটি উপেক্ষা করুন।

ওয়েবসাইট: {self.site_url}
যোগাযোগ: {self.site_url}/contact
"""
        return await self.send_email(to_email, subject, html_content, text_content)

    async def send_campus_ambassador_confirmation(self, full_name: str, email: str, university_name: str) -> bool:
        subject = "Campus Ambassador Application Received - Skilltori"

        html_content = self._layout(
            subject,
            "🎓 Campus Ambassador Application",
            "Application Received Successfully!",
            "linear-gradient(135deg, #fbbf24 0%, #f59e0b 100%)",
            f"""
                    <p>Dear {full_name},</p>
                    <p>Thank you for your interest in becoming a Campus Ambassador for Skilltori! We have received your application.</p>
                    <div class="details">
                        <h3>📋 Application Details</h3>
                        <p>Name: {full_name}<br>Email: {email}<br>University: {university_name}</p>
                    </div>
                    <p>Our team will review your application and get back to you within the next few days.</p>
                    {self._contact_html()}
            """,
        )

        text_content = f"""Campus Ambassador Application Received - Skilltori

Dear {full_name},

Thank you for your interest in becoming a Campus Ambassador for Skilltori! We have received your application.

Application Details:
- Name: {full_name}
- Email: {email}
- University: {university_name}

Our team will review your application and get back to you within the next few days.

{self._contact_text()}
Best regards,
The Skilltori Team
"""
        return await self.send_email(email, subject, html_content, text_content)

    async def send_job_application_confirmation(
        self,
        full_name: str,
        email: str,
        job_title: str,
        job_company: str = "Skilltori"
    ) -> bool:
        subject = f"Job Application Received - {job_title} at {job_company}"

        html_content = self._layout(
            subject,
            "💼 Job Application",
            "Application Received Successfully!",
            "linear-gradient(135deg, #10b981 0%, #059669 100%)",
            f"""
                    <p>Dear {full_name},</p>
                    <p>Thank you for your interest in the {job_title} position at {job_company}! We have received your application.</p>
                    <div class="details">
                        <h3>📋 Application Details</h3>
                        <p>Name: {full_name}<br>Email: {email}<br>Position: {job_title}<br>Company: {job_company}</p>
                    </div>
                    <p>Our hiring team usually responds within 3-5 business days.</p>
                    {self._contact_html()}
            """,
        )

        text_content = f"""Job Application Received - {job_title} at {job_company}

Dear {full_name},

Thank you for your interest in the {job_title} position at {job_company}! We have received your application.

Application Details:
- Name: {full_name}
- Email: {email}
- Position: {job_title}
- Company: {job_company}

Our hiring team usually responds within 3-5 business days.

{self._contact_text()}
Best regards,
The Skilltori Team
"""
        return await self.send_email(email, subject, html_content, text_content)

    async def send_workshop_payment_confirmation(
        self,
        full_name: str,
        email: str,
        workshop_title: str,
        workshop_date: str,
        workshop_time: str,
        speaker_name: str,
        amount: float,
        group_link: Optional[str] = None
    ) -> bool:
        subject = f"Workshop Payment Confirmation - {workshop_title}"
        amount_text = format_price(amount)

        group_html = ""
        group_text = ""
        if group_link:
            group_html = f"""
                    <p style="text-align: center;"><a href="{group_link}" class="button">Join WhatsApp Group</a></p>
            """
            group_text = f"WhatsApp Group: {group_link}\nJoin the group to connect with other participants and get workshop updates!\n"

        html_content = self._layout(
            subject,
            "🎓 Workshop Payment",
            "Payment Successful!",
            "linear-gradient(135deg, #8b5cf6 0%, #6d28d9 100%)",
            f"""
                    <p>Dear {full_name},</p>
                    <p>Congratulations! Your payment for the {workshop_title} workshop has been processed. You are now enrolled.</p>
                    <div class="details">
                        <h3>📋 Workshop Details</h3>
                        <p><strong>Date:</strong> {workshop_date}<br>
                        <strong>Time:</strong> {workshop_time}<br>
                        <strong>Speaker:</strong> {speaker_name}<br>
                        <strong>Amount Paid:</strong> {amount_text}</p>
                    </div>
                    {group_html}
                    {self._contact_html()}
            """,
        )

        text_content = f"""Workshop Payment Confirmation - {workshop_title}

Dear {full_name},

Congratulations! Your payment for the {workshop_title} workshop has been processed. You are now enrolled.

Workshop Details:
- Workshop: {workshop_title}
- Date: {workshop_date}
- Time: {workshop_time}
- Speaker: {speaker_name}
- Amount Paid: {amount_text}

{group_text}
{self._contact_text()}
Best regards,
The Skilltori Team
"""
        return await self.send_email(email, subject, html_content, text_content)

    async def send_course_payment_confirmation(
        self,
        full_name: str,
        email: str,
        course_title: str,
        course_type: str,
        course_duration: str,
        amount: float
    ) -> bool:
        subject = f"Course Payment Confirmation - {course_title}"
        amount_text = format_price(amount)

        html_content = self._layout(
            subject,
            "📚 Course Payment",
            "Payment Successful!",
            "linear-gradient(135deg, #3b82f6 0%, #1d4ed8 100%)",
            f"""
                    <p>Dear {full_name},</p>
                    <p>Congratulations! Your payment for the {course_title} course has been processed. You are now enrolled.</p>
                    <div class="details">
                        <h3>📋 Course Details</h3>
                        <p><strong>Course:</strong> {course_title}<br>
                        <strong>Type:</strong> {course_type}<br>
                        <strong>Duration:</strong> {course_duration}<br>
                        <strong>Amount Paid:</strong> {amount_text}</p>
                    </div>
                    {self._contact_html()}
            """,
        )

        text_content = f"""Course Payment Confirmation - {course_title}

Dear {full_name},

Congratulations! Your payment for the {course_title} course has been processed. You are now enrolled.

Course Details:
- Course: {course_title}
- Type: {course_type}
- Duration: {course_duration}
- Amount Paid: {amount_text}

{self._contact_text()}
Best regards,
The Skilltori Team
"""
        return await self.send_email(email, subject, html_content, text_content)

    async def send_test_email(self, to_email: str) -> bool:
        """Diagnostic message for the admin test page"""
        subject = "Test Email - Skilltori"
        sent_at = datetime.utcnow().isoformat()
        html_content = self._layout(
            subject,
            "✅ Test Email",
            "SMTP delivery check",
            "linear-gradient(135deg, #6b7280 0%, #374151 100%)",
            f"<p>This is a test email sent at {sent_at} UTC.</p>",
        )
        text_content = f"This is a test email sent at {sent_at} UTC."
        return await self.send_email(to_email, subject, html_content, text_content)


email_service = EmailService()
