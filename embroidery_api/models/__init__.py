from .employee import Employee, EmployeeRole
from .customer import Customer
from .order import Order, OrderPaymentStatus
from .order_attachment import OrderAttachment
from .invoice import Invoice, InvoiceStatus
from .stock_design import StockDesign
