"""
Typed payloads for every upstream call.

Responses are validated and narrowed here, at the source boundary. Only
modeled fields survive; anything else the upstream sends is ignored.
"""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from alphdata.utils.dates import parse_timestamp_ms


def _int_string(value: Any) -> Any:
    """Accept integers or integer strings for amount fields, keep them as strings."""
    if value is None:
        return value
    if isinstance(value, bool):
        raise ValueError("boolean is not an amount")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return value


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# Node: balances and UTXOs

class AddressBalance(WireModel):
    """``GET /addresses/{address}/balance`` (atto units)."""
    balance: str
    locked_balance: str = Field(default="0", alias="lockedBalance")
    utxo_num: int = Field(default=0, alias="utxoNum")

    @field_validator('balance', 'locked_balance', mode='before')
    @classmethod
    def coerce_amounts(cls, v):
        return _int_string(v)


class TokenAmount(WireModel):
    id: str
    amount: str

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amounts(cls, v):
        return _int_string(v)


class UtxoRef(WireModel):
    hint: Optional[int] = None
    key: Optional[str] = None


class Utxo(WireModel):
    ref: Optional[UtxoRef] = None
    amount: str = "0"
    tokens: List[TokenAmount] = Field(default_factory=list)
    lock_time: Optional[int] = Field(default=None, alias="lockTime")

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amounts(cls, v):
        return _int_string(v)

    @field_validator('tokens', mode='before')
    @classmethod
    def none_tokens(cls, v):
        return v or []


class UtxoList(WireModel):
    """``GET /addresses/{address}/utxos``."""
    utxos: List[Utxo] = Field(default_factory=list)


class ChainInfo(WireModel):
    """``GET /blockflow/chain-info``."""
    current_height: int = Field(alias="currentHeight")


class NodeInfo(WireModel):
    """``GET /infos/node``."""
    build_info: Dict[str, Any] = Field(default_factory=dict, alias="buildInfo")
    upnp: Optional[bool] = None


# Explorer backend: token standards and metadata

class TokenStdInfo(WireModel):
    """One entry of ``POST /tokens``."""
    token: str
    std_interface_id: Optional[str] = Field(default=None, alias="stdInterfaceId")


class FungibleTokenMetadata(WireModel):
    """One entry of ``POST /tokens/fungible-metadata``. Name and symbol are usually hex."""
    id: str
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: Union[int, str] = 0
    total_supply: Optional[str] = Field(default=None, alias="totalSupply")

    @field_validator('total_supply', mode='before')
    @classmethod
    def coerce_amounts(cls, v):
        return _int_string(v)


class NFTMetadata(WireModel):
    """One entry of ``POST /tokens/nft-metadata``."""
    id: str
    token_uri: Optional[str] = Field(default=None, alias="tokenUri")
    collection_id: Optional[str] = Field(default=None, alias="collectionId")
    nft_index: Optional[str] = Field(default=None, alias="nftIndex")

    @field_validator('nft_index', mode='before')
    @classmethod
    def coerce_amounts(cls, v):
        return _int_string(v)


# Explorer backend: transactions

class TransactionInput(WireModel):
    address: Optional[str] = None
    atto_alph_amount: Optional[str] = Field(default=None, alias="attoAlphAmount")
    tokens: List[TokenAmount] = Field(default_factory=list)

    @field_validator('atto_alph_amount', mode='before')
    @classmethod
    def coerce_amounts(cls, v):
        return _int_string(v)

    @field_validator('tokens', mode='before')
    @classmethod
    def none_tokens(cls, v):
        return v or []


class TransactionOutput(TransactionInput):
    pass


class ExplorerTransaction(WireModel):
    """One entry of ``GET /addresses/{address}/transactions``."""
    hash: Optional[str] = None
    block_hash: Optional[str] = Field(default=None, alias="blockHash")
    timestamp: Optional[int] = None  # epoch milliseconds
    inputs: List[TransactionInput] = Field(default_factory=list)
    outputs: List[TransactionOutput] = Field(default_factory=list)
    gas_amount: Optional[str] = Field(default=None, alias="gasAmount")
    gas_price: Optional[str] = Field(default=None, alias="gasPrice")
    script_execution_ok: bool = Field(default=True, alias="scriptExecutionOk")
    token_id: Optional[str] = Field(default=None, alias="tokenId")

    @field_validator('gas_amount', 'gas_price', mode='before')
    @classmethod
    def coerce_amounts(cls, v):
        return _int_string(v)

    @field_validator('timestamp', mode='before')
    @classmethod
    def parse_timestamp(cls, v):
        return parse_timestamp_ms(v)

    @field_validator('inputs', 'outputs', mode='before')
    @classmethod
    def none_lists(cls, v):
        return v or []

    @field_validator('script_execution_ok', mode='before')
    @classmethod
    def default_ok(cls, v):
        # Only an explicit false marks a failed script
        return v is not False


# Community token list

class TokenListEntry(WireModel):
    id: str
    name: str
    symbol: str
    decimals: int = 0
    description: Optional[str] = None
    logo_uri: Optional[str] = Field(default=None, alias="logoURI")
    name_on_chain: Optional[str] = Field(default=None, alias="nameOnChain")
    symbol_on_chain: Optional[str] = Field(default=None, alias="symbolOnChain")


class TokenList(WireModel):
    network_id: Optional[int] = Field(default=None, alias="networkId")
    tokens: List[TokenListEntry] = Field(default_factory=list)


# Explorer API: balance history and network statistics

class HistoryApiPoint(WireModel):
    date: Optional[str] = None
    balance: Optional[Union[float, str]] = None
    amount: Optional[Union[float, str]] = None
    timestamp: Optional[Union[str, int, float]] = None


class HashrateSample(WireModel):
    hashrate: float = 0.0
    difficulty: float = 0.0


class BlockTimeSample(WireModel):
    average_time: float = Field(alias="averageTime")


class SupplyInfo(WireModel):
    circulating_supply: Optional[float] = Field(default=None, alias="circulatingSupply")


class TxCountSample(WireModel):
    count: int = 0


class BlockSummary(WireModel):
    hash: str
    timestamp: Optional[int] = None
    height: int
    tx_number: int = Field(default=0, alias="txNumber")

    @field_validator('timestamp', mode='before')
    @classmethod
    def parse_timestamp(cls, v):
        return parse_timestamp_ms(v)


class BlocksPage(WireModel):
    blocks: List[BlockSummary] = Field(default_factory=list)


class TotalCount(WireModel):
    total: int
