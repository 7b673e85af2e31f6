from eth_abi import encode
from eth_hash.auto import keccak

# execute(Call[] calls) of the batch call delegation contract,
# where Call is (bytes data, address to, uint256 value).
BATCH_EXECUTE_ABI = [{
  'type': 'function',
  'name': 'execute',
  'stateMutability': 'payable',
  'inputs': [{
    'name': 'calls',
    'type': 'tuple[]',
    'components': [
      {'name': 'data', 'type': 'bytes'},
      {'name': 'to', 'type': 'address'},
      {'name': 'value', 'type': 'uint256'},
    ],
  }],
  'outputs': [],
}]


def get_type_def_from_encode(abi_json, filter_func, mapper_func):
  """
  Extracts and flattens a type definition from an ABI JSON, typically used for
  encoding function inputs or outputs.

  Args:
      abi_json (list): The ABI in JSON format, a list of function/event/constructor entries.
      filter_func (callable): Selects the ABI entry, e.g.
                              `lambda item: item['type'] == 'function' and item['name'] == 'execute'`
      mapper_func (callable): Picks the part of the entry holding the types, e.g. `lambda item: item['inputs']`

  Returns:
      list[str]: One canonical type string per parameter, e.g. `['(bytes,address,uint256)[]']`.
  """
  type_defs = next(map(mapper_func, filter(filter_func, abi_json)))
  return [flatten_type_def(x) for x in type_defs]


def flatten_type_def(item):
  """
  Recursively flattens a type definition (like structs) into its canonical string.

  Args:
      item (dict): An ABI parameter or struct component.

  Returns:
      str: - basic types (e.g. 'uint256', 'address') are returned as they are.
           - tuples become a parenthesized list of their components, keeping any array
             suffix: `tuple[]` with (bytes, address, uint256) is `(bytes,address,uint256)[]`.
  """
  if 'components' in item:
      array_suffix = item['type'][len('tuple'):]
      return '(' + ','.join(flatten_type_def(x) for x in item['components']) + ')' + array_suffix

  return item['type']


def get_function_signature(abi_json, function_name: str) -> str:
  types = get_type_def_from_encode(abi_json,
                                   lambda item: item['type'] == 'function' and item['name'] == function_name,
                                   lambda item: item['inputs'])
  return function_name + '(' + ','.join(types) + ')'


def get_function_selector(function_signature: str) -> bytes:
  """
  Calculates the 4-byte function selector: the first four bytes of the Keccak-256 hash
  of the canonical signature (e.g., "transfer(address,uint256)").
  """
  return keccak(function_signature.encode())[:4]


def encode_function_call(abi_json, function_name: str, *args) -> bytes:
  """
  Encodes a call to `function_name` as selector followed by the ABI-encoded arguments.
  """
  types = get_type_def_from_encode(abi_json,
                                   lambda item: item['type'] == 'function' and item['name'] == function_name,
                                   lambda item: item['inputs'])
  signature = function_name + '(' + ','.join(types) + ')'
  return get_function_selector(signature) + encode(types, list(args))


def encode_batch_execute(calls) -> bytes:
  """
  Builds the call data of `execute(calls)` on the batch call delegation contract.

  Args:
      calls (list[model.Call]): The sub-calls, executed in order by the delegated account.

  Returns:
      bytes: The call data for the set-code transaction's `data` field.
  """
  return encode_function_call(BATCH_EXECUTE_ABI, 'execute', [call.encode() for call in calls])
