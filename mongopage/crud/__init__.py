from .crudhelper import CrudHelper
