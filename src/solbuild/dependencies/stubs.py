# Copyright 2026 SolBuild Contributors
# SPDX-License-Identifier: Apache-2.0

"""Minimal stand-in sources written when a dependency cannot be fetched.

Stubs let a compilation proceed far enough to report errors in the user's
own code. They carry no real functionality and are only installed when
``allow_stubs`` is enabled.
"""

from pathlib import Path

from solbuild.model.dependency import DependencyCoordinate

# ###############
# Public Interface
# ###############

_STUB_HEADER = """// SPDX-License-Identifier: MIT
pragma solidity ^0.8.0;

// Stub installed by SolBuild because the real dependency could not be fetched.
"""

_IERC20 = (
    _STUB_HEADER
    + """
interface IERC20 {
    event Transfer(address indexed from, address indexed to, uint256 value);
    event Approval(address indexed owner, address indexed spender, uint256 value);

    function totalSupply() external view returns (uint256);
    function balanceOf(address account) external view returns (uint256);
    function transfer(address to, uint256 amount) external returns (bool);
    function allowance(address owner, address spender) external view returns (uint256);
    function approve(address spender, uint256 amount) external returns (bool);
    function transferFrom(address from, address to, uint256 amount) external returns (bool);
}
"""
)

_ERC20 = (
    _STUB_HEADER
    + """
contract ERC20 {
    string private _name;
    string private _symbol;
    uint256 private _totalSupply;
    mapping(address => uint256) private _balances;

    constructor(string memory name_, string memory symbol_) {
        _name = name_;
        _symbol = symbol_;
    }

    function name() public view virtual returns (string memory) {
        return _name;
    }

    function symbol() public view virtual returns (string memory) {
        return _symbol;
    }

    function decimals() public view virtual returns (uint8) {
        return 18;
    }

    function totalSupply() public view virtual returns (uint256) {
        return _totalSupply;
    }

    function balanceOf(address account) public view virtual returns (uint256) {
        return _balances[account];
    }

    function _mint(address account, uint256 amount) internal virtual {
        _totalSupply += amount;
        _balances[account] += amount;
    }

    function _burn(address account, uint256 amount) internal virtual {
        _balances[account] -= amount;
        _totalSupply -= amount;
    }
}
"""
)

_ERC20_BURNABLE = (
    _STUB_HEADER
    + """
import "../ERC20.sol";

abstract contract ERC20Burnable is ERC20 {
    function burn(uint256 amount) public virtual {
        _burn(msg.sender, amount);
    }
}
"""
)

_OWNABLE = (
    _STUB_HEADER
    + """
abstract contract Ownable {
    address private _owner;

    constructor() {
        _owner = msg.sender;
    }

    function owner() public view virtual returns (address) {
        return _owner;
    }

    modifier onlyOwner() {
        require(owner() == msg.sender, "Ownable: caller is not the owner");
        _;
    }
}
"""
)

# Repository -> relative path (inside the package source dir) -> contents.
STUB_SOURCES: dict[str, dict[str, str]] = {
    "OpenZeppelin/openzeppelin-contracts": {
        "token/ERC20/IERC20.sol": _IERC20,
        "token/ERC20/ERC20.sol": _ERC20,
        "token/ERC20/extensions/ERC20Burnable.sol": _ERC20_BURNABLE,
        "access/Ownable.sol": _OWNABLE,
    },
}


def has_stubs(coordinate: DependencyCoordinate) -> bool:
    return coordinate.repository in STUB_SOURCES


def write_stubs(coordinate: DependencyCoordinate, target_dir: Path) -> list[Path]:
    """Write the stub sources of *coordinate* below *target_dir*.

    Returns the written files; an empty list when no stubs exist for the
    coordinate's repository.
    """
    sources = STUB_SOURCES.get(coordinate.repository, {})
    base = target_dir / coordinate.source_dir if coordinate.source_dir else target_dir
    written: list[Path] = []
    for relative, text in sources.items():
        path = base / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        written.append(path)
    return written
