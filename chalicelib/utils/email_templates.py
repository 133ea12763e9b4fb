from datetime import datetime

from chalicelib.constants.constants import STATUS_PREPARING


def get_order_status_message(order_id, status):
    if status == STATUS_PREPARING:
        return f"Your order #{order_id} is now being prepared."
    return f"Your order #{order_id} is ready for pickup!"


def get_order_status_email(order_record, status):
    order_id = order_record.get('id_')
    if status == STATUS_PREPARING:
        message = f"Your order #{order_id} is now being prepared. We'll notify you once it's ready for pickup."
    else:
        message = f"Your order #{order_id} is now ready for pickup!"
    items = order_record.get('items') or []
    customer_name = (order_record.get('user_details') or {}).get('name', '')

    text = f"""
        Hi {customer_name},\n
        {message}\n
        Items: {', '.join(f"{item.get('name')} x {item.get('quantity')}" for item in items)}\n
        Total: {order_record.get('total')}\n
        Status: {status}
    """
    item_list_html = ''.join(
        f'<li><img src="{item.get("image", "")}" alt="{item.get("name")}" width="60" height="60" /> '
        f'{item.get("name")} &times; {item.get("quantity")}</li>'
        for item in items
    )
    html = f"""
        <p>Hi {customer_name},</p>
        <p>{message}</p>
        <ul>{item_list_html}</ul>
        <p>Total: ${order_record.get('total')}</p>
        <p>&copy; {datetime.now().year}</p>
    """
    return f'Order #{order_id} is {status}', text, html


def get_new_order_notification_message(order_record):
    user_details = order_record.get('user_details') or {}
    return f"""
        Order details: \n
        ID: {order_record.get('id_')}\n
        Items: {', '.join(f"{item.get('name')} x {item.get('quantity')}" for item in order_record.get('items') or [])}\n
        Total: {order_record.get('total')}\n
        Customer: {user_details.get('name')}\n
        Phone: {user_details.get('phone_number')}\n
        User ID: {order_record.get('user_id')}
    """


def get_inquiry_reply_message(inquiry_record, reply_message):
    return f"""
        Hi {inquiry_record.get('name')},\n
        {reply_message}\n
        ---\n
        Your inquiry ({inquiry_record.get('reason')}): {inquiry_record.get('message')}
    """
