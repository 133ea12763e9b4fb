users_pk = 'users'
users_sk = '{user_id}'

menu_items_pk = 'menu_items'
menu_items_sk = '{menu_item_id}'

orders_pk = 'orders'
orders_sk = '{order_id}'

payments_pk = 'payments_{user_id}'
payments_sk = '{payment_intent_id}'

notifications_pk = 'notifications_{user_id}'
notifications_sk = '{date_created}_{notification_id}'

card_details_pk = 'card_details_{user_id}'
card_details_sk = 'default'

inquiries_pk = 'inquiries'
inquiries_sk = '{inquiry_id}'

responded_inquiries_pk = 'responded_inquiries'
responded_inquiries_sk = '{inquiry_id}'

app_state_pk = 'app_state_{client_id}'
app_state_sk = '{key}'
