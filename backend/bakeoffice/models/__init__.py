from .tenancy import Restaurant, UserRestaurant
from .auth import User, SessionToken
from .security import SecurityEvent
from .inventory import InventoryItem, StockMovement
from .sales import Sale, SaleItem
from .expenses import ExpenseCategory, Supplier, Expense, ExpenseItem, ExpensePayment
from .debts import Customer, Debt, DebtPayment
from .bank import BankTransaction
from .production import ProductionLog, ProductionItem
from .reconciliation import StockReconciliation, ReconciliationItem

__all__ = [
    'Restaurant', 'UserRestaurant',
    'User', 'SessionToken', 'SecurityEvent',
    'InventoryItem', 'StockMovement',
    'Sale', 'SaleItem',
    'ExpenseCategory', 'Supplier', 'Expense', 'ExpenseItem', 'ExpensePayment',
    'Customer', 'Debt', 'DebtPayment',
    'BankTransaction',
    'ProductionLog', 'ProductionItem',
    'StockReconciliation', 'ReconciliationItem',
]
