import os

from chalice import Chalice, Response

from chalicelib import analytics, app_state, carts, checkout, images, inquiries, menu_items, notifications, \
    orders, payments, triggers, users
from chalicelib.constants.status_codes import http200

app = Chalice(app_name='restaurant-ordering')

app.api.binary_types.insert(0, 'multipart/form-data')
app.debug = os.environ.get('CHALICE_DEBUG', 'false').lower() == 'true'


def get_orders_table_stream_arn():
    return os.environ.get(
        "ORDERS_TABLE_STREAM_ARN",
        "arn:aws:dynamodb:ap-southeast-2:000000000000:table/restaurant-ordering/stream/local"
    )


@app.on_dynamodb_record(stream_arn=get_orders_table_stream_arn())
def db_table_stream_trigger(event):
    return triggers.db_table_stream_trigger(event)


# HEALTH
@app.route('/health-check', methods=['GET'], cors=True)
def health_check():
    return Response(status_code=http200, body={'health': 'check'})


# PREFERENCES
@app.route('/preferences', methods=['GET'], cors=True)
def get_preferences():
    return app_state.endpoint_get_preferences(app.current_request)


@app.route('/preferences', methods=['PUT'], cors=True)
def update_preferences():
    return app_state.endpoint_update_preferences(app.current_request)


# MENU ITEMS
@app.route('/menu-items', methods=['GET'], cors=True)
def get_menu_items():
    return menu_items.endpoint_get_menu_items(app.current_request)


@app.route('/menu-items/{menu_item_id}', methods=['GET'], cors=True)
def get_menu_item(menu_item_id):
    return menu_items.endpoint_get_menu_item(app.current_request, menu_item_id)


@app.route('/admin/menu-items', methods=['GET'], cors=True)
def admin_get_menu_items():
    return menu_items.endpoint_admin_get_menu_items(app.current_request)


@app.route('/admin/menu-items', methods=['POST'], cors=True)
def create_menu_item():
    """
    admin operation
    """
    return menu_items.endpoint_create_menu_item(app.current_request)


@app.route('/admin/menu-items/{menu_item_id}', methods=['PUT'], cors=True)
def update_menu_item(menu_item_id):
    """
    admin operation
    """
    return menu_items.endpoint_update_menu_item(app.current_request, menu_item_id)


@app.route('/admin/menu-items/{menu_item_id}', methods=['DELETE'], cors=True)
def delete_menu_item(menu_item_id):
    """
    admin operation
    """
    return menu_items.endpoint_delete_menu_item(app.current_request, menu_item_id)


# CART
@app.route('/carts', methods=['GET'], cors=True)
def get_cart():
    return carts.endpoint_get_cart(app.current_request)


@app.route('/carts', methods=['POST'], cors=True)
def add_item_to_cart():
    return carts.endpoint_add_item_to_cart(app.current_request)


@app.route('/carts/{menu_item_id}', methods=['PUT'], cors=True)
def update_cart_item(menu_item_id):
    return carts.endpoint_update_cart_item(app.current_request, menu_item_id)


@app.route('/carts/{menu_item_id}', methods=['DELETE'], cors=True)
def remove_item_from_cart(menu_item_id):
    return carts.endpoint_remove_item_from_cart(app.current_request, menu_item_id)


@app.route('/carts', methods=['DELETE'], cors=True)
def clear_cart():
    return carts.endpoint_clear_cart(app.current_request)


# CHECKOUT
@app.route('/checkout', methods=['POST'], cors=True)
def begin_checkout():
    """
    anonymous users get 401 with the login redirect and their cart
    """
    return checkout.endpoint_begin_checkout(app.current_request)


@app.route('/checkout/pending-order', methods=['POST'], cors=True)
def create_pending_order():
    return checkout.endpoint_create_pending_order(app.current_request)


@app.route('/checkout/confirm', methods=['POST'], cors=True)
def confirm_checkout():
    return checkout.endpoint_confirm_checkout(app.current_request)


# PAYMENTS
@app.route('/api/create-payment-intent', methods=['POST'], cors=True)
def create_payment_intent():
    return payments.endpoint_create_payment_intent(app.current_request)


@app.route('/save-card-details', methods=['POST'], cors=True)
def save_card_details():
    return payments.endpoint_save_card_details(app.current_request)


# ORDERS
@app.route('/orders', methods=['GET'], cors=True)
def get_user_orders():
    """
    user can get his orders
    """
    return orders.endpoint_get_user_orders(app.current_request)


@app.route('/admin/orders', methods=['GET'], cors=True)
def admin_get_orders():
    """
    admin operation
    """
    return orders.endpoint_admin_get_orders(app.current_request)


@app.route('/admin/orders/{order_id}/status', methods=['PUT'], cors=True)
def admin_advance_order_status(order_id):
    """
    admin operation, Pending -> Preparing -> Ready
    """
    return orders.endpoint_admin_advance_order_status(app.current_request, order_id)


# ANALYTICS
@app.route('/admin/analytics', methods=['GET'], cors=True)
def admin_get_analytics():
    return analytics.endpoint_get_analytics(app.current_request)


# NOTIFICATIONS
@app.route('/notifications', methods=['GET'], cors=True)
def get_notifications():
    return notifications.endpoint_get_notifications(app.current_request)


@app.route('/notifications/{notification_id}', methods=['PUT'], cors=True)
def mark_notification_read(notification_id):
    return notifications.endpoint_mark_notification_read(app.current_request, notification_id)


# INQUIRIES
@app.route('/inquiries', methods=['POST'], cors=True)
def create_inquiry():
    return inquiries.endpoint_create_inquiry(app.current_request)


@app.route('/admin/inquiries', methods=['GET'], cors=True)
def admin_get_inquiries():
    return inquiries.endpoint_admin_get_inquiries(app.current_request)


@app.route('/admin/inquiries/responded', methods=['GET'], cors=True)
def admin_get_responded_inquiries():
    return inquiries.endpoint_admin_get_responded_inquiries(app.current_request)


@app.route('/admin/inquiries/{inquiry_id}/reply', methods=['POST'], cors=True)
def admin_reply_inquiry(inquiry_id):
    return inquiries.endpoint_admin_reply_inquiry(app.current_request, inquiry_id)


# USERS
@app.route('/users', methods=['POST'], cors=True)
def create_profile():
    return users.endpoint_create_profile(app.current_request)


@app.route('/users', methods=['GET'], cors=True)
def get_user():
    return users.endpoint_get_user(app.current_request)


@app.route('/users', methods=['PUT'], cors=True)
def update_user():
    return users.endpoint_update_user(app.current_request)


@app.route('/admin/users', methods=['GET'], cors=True)
def admin_get_users():
    return users.endpoint_admin_get_users(app.current_request)


@app.route('/admin/users', methods=['POST'], cors=True)
def admin_create_user():
    return users.endpoint_admin_create_user(app.current_request)


@app.route('/admin/users/{user_id}', methods=['DELETE'], cors=True)
def admin_delete_user(user_id):
    """
    soft delete, the profile is kept with deleted=True
    """
    return users.endpoint_admin_delete_user(app.current_request, user_id)


@app.route('/admin/users/{user_id}/reset-password', methods=['POST'], cors=True)
def admin_reset_password(user_id):
    return users.endpoint_admin_reset_password(app.current_request, user_id)


# IMAGES
@app.route('/image-upload', methods=['POST'], content_types=['multipart/form-data'], cors=True)
def image_upload():
    return images.image_upload(app.current_request)
