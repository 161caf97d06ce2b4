#-------------------------------------------------------------------------
# Copyright (c) Microsoft.  All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#--------------------------------------------------------------------------
from ._error import (
    _ERROR_INCORRECT_PARTITION_KEY_IN_BATCH,
    _ERROR_DUPLICATE_ROW_KEY_IN_BATCH,
    _ERROR_TOO_MANY_ENTITIES_IN_BATCH,
    _ERROR_RETRIEVE_MUST_BE_ONLY_OPERATION_IN_BATCH,
)
from .models import (
    AzureBatchValidationError,
    TableOperationType,
)
from ._request import (
    _insert_entity,
    _update_entity,
    _merge_entity,
    _delete_entity,
    _insert_or_replace_entity,
    _insert_or_merge_entity,
    _get_entity,
    _rotate_entity_encryption_key,
)

class TableBatch(object):

    '''
    This is the class that is used for batch operation for storage table
    service. It only supports one changeset. Iterating it yields the
    :class:`~storagetable.table.models.TableOperation` objects in the order
    they were added.
    '''

    def __init__(self):
        self._operations = []
        self._partition_key = None
        self._row_keys = []

    def __len__(self):
        return len(self._operations)

    def __iter__(self):
        return iter(self._operations)

    def insert_entity(self, entity, echo_content=False):
        '''
        Adds an insert entity operation to the batch. 
        The operation will not be executed until the batch is committed.

        :param entity:
            Required. The entity object to insert. Could be a dict format or
            entity object. Must contain a PartitionKey and a RowKey.
        :type entity: a dict or :class:`storagetable.table.models.Entity`
        :param bool echo_content:
            Whether the service should return the inserted entity.
        '''
        self._add_to_batch(_insert_entity(entity, echo_content))

    def update_entity(self, entity, if_match='*'):
        '''
        Adds an update entity operation to the batch. The Update Entity operation
        replaces the entire entity and can be used to remove properties.
        The operation will not be executed until the batch is committed.

        :param entity:
            Required. The entity object to insert. Could be a dict format or
            entity object. Must contain a PartitionKey and a RowKey.
        :type entity: a dict or :class:`storagetable.table.models.Entity`
        :param str if_match:
            The client may specify the ETag for the entity on the 
            request in order to compare to the ETag maintained by the service 
            for the purpose of optimistic concurrency. The update operation 
            will be performed only if the ETag sent by the client matches the 
            value maintained by the server, indicating that the entity has 
            not been modified since it was retrieved by the client. To force 
            an unconditional update, set If-Match to the wildcard character (*)
            or pass None to send no If-Match at all.
        '''
        self._add_to_batch(_update_entity(entity, if_match))

    def merge_entity(self, entity, if_match='*'):
        '''
        Adds a merge entity operation to the batch. This operation does not replace 
        the existing entity as the Update Entity operation does.
        The operation will not be executed until the batch is committed.

        :param entity:
            Required. The entity object to insert. Can be a dict format or
            entity object. Must contain a PartitionKey and a RowKey.
        :type entity: a dict or :class:`storagetable.table.models.Entity`
        :param str if_match:
            The ETag to compare against, see :func:`update_entity`.
        '''
        self._add_to_batch(_merge_entity(entity, if_match))

    def delete_entity(self, partition_key, row_key,
                      if_match='*'):
        '''
        Adds a delete entity operation to the batch.
        The operation will not be executed until the batch is committed.

        :param str partition_key:
            PartitionKey of the entity.
        :param str row_key:
            RowKey of the entity.
        :param str if_match:
            The ETag to compare against, see :func:`update_entity`.
        '''
        self._add_to_batch(_delete_entity(partition_key, row_key, if_match))

    def insert_or_replace_entity(self, entity):
        '''
        Adds an insert or replace entity operation to the batch. This
        replaces an existing entity or inserts a new entity if it does not
        exist in the table. Because this operation can insert or update an
        entity, it is also known as an "upsert" operation.
        The operation will not be executed until the batch is committed.

        :param entity:
            Required. The entity object to insert. Could be a dict format or
            entity object. Must contain a PartitionKey and a RowKey.
        :type entity: a dict or :class:`storagetable.table.models.Entity`
        '''
        self._add_to_batch(_insert_or_replace_entity(entity))

    def insert_or_merge_entity(self, entity):
        '''
        Adds an insert or merge entity operation to the batch. This 
        merges an existing entity or inserts a new entity if it does not exist
        in the table. Because this operation can insert or update an entity,
        it is also known as an "upsert" operation.
        The operation will not be executed until the batch is committed.

        :param entity:
            Required. The entity object to insert. Could be a dict format or
            entity object. Must contain a PartitionKey and a RowKey.
        :type entity: a dict or :class:`storagetable.table.models.Entity`
        '''
        self._add_to_batch(_insert_or_merge_entity(entity))

    def retrieve_entity(self, partition_key, row_key):
        '''
        Adds a retrieve entity operation to the batch. A batch holding a
        retrieve cannot hold any other operation.

        :param str partition_key:
            PartitionKey of the entity.
        :param str row_key:
            RowKey of the entity.
        '''
        self._add_to_batch(_get_entity(partition_key, row_key))

    def rotate_entity_encryption_key(self, entity, if_match='*'):
        '''
        Adds an operation re-wrapping the content encryption key of an
        encrypted entity. Requires an encryption policy when the batch is
        built.

        :param entity:
            Required. The encrypted entity, as retrieved from the service.
        :type entity: a dict or :class:`storagetable.table.models.Entity`
        :param str if_match:
            The ETag to compare against, see :func:`update_entity`.
        '''
        self._add_to_batch(_rotate_entity_encryption_key(entity, if_match))

    def _add_to_batch(self, operation):
        '''
        Validates batch-specific rules.

        :param TableOperation operation:
            the operation to insert, update, delete or retrieve an entity
        '''
        partition_key = operation.partition_key
        row_key = operation.row_key

        # A retrieve travels alone
        if self._operations and (operation.operation_type == TableOperationType.RETRIEVE or
                                 self._operations[0].operation_type == TableOperationType.RETRIEVE):
            raise AzureBatchValidationError(_ERROR_RETRIEVE_MUST_BE_ONLY_OPERATION_IN_BATCH)

        # All same partition keys
        if self._operations:
            if self._partition_key != partition_key:
                raise AzureBatchValidationError(_ERROR_INCORRECT_PARTITION_KEY_IN_BATCH)
        else:
            self._partition_key = partition_key

        # All different row keys
        if row_key in self._row_keys:
            raise AzureBatchValidationError(_ERROR_DUPLICATE_ROW_KEY_IN_BATCH)

        # 100 entities
        if len(self._operations) >= 100:
            raise AzureBatchValidationError(_ERROR_TOO_MANY_ENTITIES_IN_BATCH)

        self._row_keys.append(row_key)
        self._operations.append(operation)
