from app.core.config import settings
from loguru import logger
import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart


def mask_email(email: str) -> str:
    """a.customer@example.com -> a.***@example.com"""
    local, _, domain = email.partition("@")
    return f"{local[:2]}***@{domain}"


async def send_email_smtp(email_to: str, subject: str, body: str) -> bool:
    if not settings.SMTP_HOST:
        logger.warning(f"SMTP is not configured, email to {mask_email(email_to)} was not sent")
        return False

    try:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
        message["To"] = email_to

        html_part = MIMEText(body, "html")
        message.attach(html_part)

        await aiosmtplib.send(
            message,
            hostname=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            start_tls=settings.SMTP_TLS,
        )

        logger.info(f"Email sent successfully to {mask_email(email_to)}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email: {str(e)}")
        return False


async def send_verification_email(email_to: str, verification_code: str) -> bool:
    subject = f"Your {settings.PROJECT_NAME} sign-in code"
    body = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
    </head>
    <body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #f5f5f5;">
        <table cellpadding="0" cellspacing="0" border="0" width="100%" style="background-color: #f5f5f5; padding: 20px 0;">
            <tr>
                <td align="center">
                    <table cellpadding="0" cellspacing="0" border="0" width="600" style="max-width: 600px; background-color: #ffffff; border-radius: 8px;">
                        <tr>
                            <td style="padding: 40px 30px; text-align: center; background-color: #F97316; border-radius: 8px 8px 0 0;">
                                <h1 style="margin: 0; color: #ffffff; font-size: 28px; font-weight: 600;">{settings.PROJECT_NAME}</h1>
                            </td>
                        </tr>
                        <tr>
                            <td style="padding: 40px 30px;">
                                <p style="margin: 0 0 30px 0; color: #4B5563; font-size: 16px; line-height: 24px; text-align: center;">
                                    Use the code below to finish signing in.
                                </p>
                                <div style="background-color: #F3F4F6; border-radius: 8px; padding: 30px; text-align: center; margin: 0 0 30px 0;">
                                    <div style="font-size: 36px; font-weight: 700; color: #F97316; letter-spacing: 8px; font-family: 'Courier New', monospace;">
                                        {verification_code}
                                    </div>
                                </div>
                                <p style="margin: 0; color: #6B7280; font-size: 14px; line-height: 20px; text-align: center;">
                                    This code expires in {settings.VERIFICATION_CODE_EXPIRE_MINUTES} minutes. If you did not request it, ignore this email.
                                </p>
                            </td>
                        </tr>
                    </table>
                </td>
            </tr>
        </table>
    </body>
    </html>
    """

    return await send_email_smtp(email_to, subject, body)
