from boto3.dynamodb.types import TypeDeserializer
from chalice.app import DynamoDBEvent

from chalicelib import subscriptions
from chalicelib.utils.logger import logger, log_exception


deserializer = TypeDeserializer()


def deserialize_ddb_rec(record=None):
    if record is None:
        record = {}
    return {key: deserializer.deserialize(value) for key, value in record.items()}


def db_table_stream_trigger(ddb_event: DynamoDBEvent) -> int:
    """
    :return:
    number of stream records which were dispatched to subscribers
    """
    logger.debug(f'db_table_stream_trigger ::: function triggered ddb_event={ddb_event.to_dict()}')
    dispatched = 0
    for record in ddb_event:
        try:
            normalized_new = deserialize_ddb_rec(record.new_image)
            normalized_old = deserialize_ddb_rec(record.old_image)
            record_type = normalized_new.get('record_type') or normalized_old.get('record_type')
            if record_type:
                subscriptions.publish(record_type, normalized_old, normalized_new, record.event_name)
                dispatched += 1
        except Exception as e:
            log_exception(e, msg=f'db_table_stream_trigger ::: failed to process record {record.event_id}')
    return dispatched
