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


class HTTPRequest(object):

    '''
    Represents an HTTP Request.

    :ivar str host:
        The host name to connect to.
    :ivar str method:
        The method to use to connect (string such as GET, POST, PUT, etc.).
    :ivar str path:
        The uri fragment, without the query string.
    :ivar query:
        Query parameters specified as a list of (name, value) pairs. A
        parameter may appear more than once.
    :vartype query: list(tuple(str, str))
    :ivar headers:
        Header values specified as a list of (name, value) pairs. Names are
        case-insensitive and a name may appear more than once.
    :vartype headers: list(tuple(str, str))
    :ivar bytes body:
        The body of the request. None means the request carries no content,
        which is distinct from an empty body.
    :ivar str protocol_override:
        Specify to use this protocol instead of the global one.
    '''

    def __init__(self):
        self.host = ''
        self.method = ''
        self.path = ''
        self.query = []
        self.headers = []
        self.body = None
        self.protocol_override = None

    def get_header_values(self, name):
        '''
        Returns every value sent for the given header name, in request order.
        The name is matched case-insensitively.
        '''
        name = name.lower()
        return ['' if value is None else value
                for header_name, value in self.headers if header_name.lower() == name]

    def get_header(self, name):
        '''
        Returns the header value, folding repeated headers with ','. Returns
        None if the header is absent.
        '''
        values = self.get_header_values(name)
        if not values:
            return None
        return ','.join(values)

    def has_header(self, name):
        name = name.lower()
        return any(header_name.lower() == name for header_name, _ in self.headers)
