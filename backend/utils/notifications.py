import os
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from twilio.rest import Client
import logging

logger = logging.getLogger(__name__)

# --- Email Configuration ---
SMTP_SERVER = os.getenv("SMTP_SERVER")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
EMAIL_SENDER = os.getenv("EMAIL_SENDER")

# --- Twilio Configuration ---
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")
SMS_COUNTRY_CODE = os.getenv("SMS_COUNTRY_CODE", "+91")


def to_e164(phone_number: str) -> str:
    """Local 10-digit numbers get the configured country code"""
    if phone_number.startswith("+"):
        return phone_number
    return f"{SMS_COUNTRY_CODE}{phone_number}"


def send_email(to_email: str, subject: str, body_html: str):
    """Sends an email using SMTP."""
    if not all([SMTP_SERVER, SMTP_PORT, SMTP_USER, SMTP_PASSWORD, EMAIL_SENDER]):
        logger.error("SMTP settings are not fully configured. Cannot send email.")
        return False

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = EMAIL_SENDER
    message["To"] = to_email
    message.attach(MIMEText(body_html, "html"))

    try:
        with smtplib.SMTP(SMTP_SERVER, SMTP_PORT) as server:
            server.starttls()
            server.login(SMTP_USER, SMTP_PASSWORD)
            server.sendmail(EMAIL_SENDER, to_email, message.as_string())
        logger.info(f"Email sent successfully to {to_email}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def send_sms(to_phone_number: str, body: str):
    """Sends an SMS using Twilio."""
    if not all([TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER]):
        logger.error("Twilio settings are not fully configured. Cannot send SMS.")
        return False

    try:
        client = Client(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN)
        message = client.messages.create(
            body=body,
            from_=TWILIO_PHONE_NUMBER,
            to=to_e164(to_phone_number)
        )
        logger.info(f"SMS sent successfully to {to_phone_number}, SID: {message.sid}")
        return True
    except Exception as e:
        logger.error(f"Failed to send SMS to {to_phone_number}: {e}")
        return False


# Email Templates
def get_order_placed_email(order_data: dict, wholesaler_name: str = None) -> tuple[str, str]:
    """Generate order placed email for the retailer"""
    subject = f"Order Placed - Order #{str(order_data['id'])[:8]}"

    lines = ""
    for item in order_data.get("items", []):
        lines += f"""
            <tr>
                <td>{item['product_name']}</td>
                <td>{item['quantity']}</td>
                <td>₹{item['unit_price']}</td>
                <td>₹{item['total']}</td>
            </tr>
        """

    body = f"""
    <html>
    <body>
        <h2>Order Placed!</h2>
        <p>Hello,</p>
        <p>{wholesaler_name or 'Your wholesaler'} has placed an order for you with the following details:</p>

        <div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px;">
            <h3>Order Details:</h3>
            <p><strong>Order ID:</strong> {order_data['id']}</p>
            <table>
                <tr><th>Product</th><th>Quantity</th><th>Unit Price</th><th>Total</th></tr>
                {lines}
            </table>
            <p><strong>Order Total:</strong> ₹{order_data['order_total']}</p>
            <p><strong>Payment Method:</strong> {order_data['payment_method'].upper()}</p>
            <p><strong>Delivery Address:</strong> {order_data['delivery_address']}</p>
        </div>

        <p>Thank you for using our platform!</p>
        <p>Best regards,<br>TradeLink Team</p>
    </body>
    </html>
    """

    return subject, body


# SMS Templates
def get_otp_sms(otp: str) -> str:
    return f"Your TradeLink verification code is {otp}. It is valid for 5 minutes. Do not share it with anyone."


def get_order_placed_sms(order_data: dict) -> str:
    """Generate order placed SMS template"""
    return f"Order placed! Order #{str(order_data['id'])[:8]} with {len(order_data.get('items', []))} item(s) - ₹{order_data['order_total']}. Status: {order_data['status']}. - TradeLink"


def get_order_status_sms(order_id: str, new_status: str, cancellation_reason: str = None) -> str:
    """Generate order status update SMS template"""
    message = f"Your order #{str(order_id)[:8]} is now {new_status}."
    if cancellation_reason and new_status in ("cancelled", "rejected"):
        message += f" Reason: {cancellation_reason}."
    return f"{message} - TradeLink"
